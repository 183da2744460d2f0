from fastapi import APIRouter, Depends, Request

from grounded_essay.api.schemas import (
	AddSourceBody,
	AnalyzeReferencesBody,
	AssembleBody,
	ExportBody,
	OutlineBody,
	ReorderBody,
	UpdateExcerptBody,
)
from grounded_essay.api.sessions import SessionManager
from grounded_essay.core.workflow import EssayWorkflow
from grounded_essay.models import SourceGroup

sessions_router = APIRouter(prefix='/sessions')


def get_sessions(request: Request) -> SessionManager:
	return request.app.state.sessions


def get_workflow(session_id: str, sessions: SessionManager = Depends(get_sessions)) -> EssayWorkflow:
	return sessions.get(session_id)


@sessions_router.post('', status_code=201)
async def create_session(sessions: SessionManager = Depends(get_sessions)):
	return {'session_id': sessions.create()}


@sessions_router.delete('/{session_id}', status_code=204)
async def close_session(session_id: str, sessions: SessionManager = Depends(get_sessions)):
	sessions.close(session_id)


# Sources


@sessions_router.post('/{session_id}/sources', status_code=201)
async def add_source(body: AddSourceBody, workflow: EssayWorkflow = Depends(get_workflow)):
	return workflow.registry.add_source(
		body.group,
		body.content,
		body.origin_kind,
		display_name=body.display_name,
		page_count=body.page_count,
		source_id=body.source_id,
	)


@sessions_router.get('/{session_id}/sources')
async def list_sources(group: SourceGroup | None = None, workflow: EssayWorkflow = Depends(get_workflow)):
	return workflow.registry.list_items(group)


@sessions_router.patch('/{session_id}/sources/{source_id}')
async def update_excerpt(source_id: str, body: UpdateExcerptBody, workflow: EssayWorkflow = Depends(get_workflow)):
	workflow.registry.update_excerpt(source_id, body.excerpt_text)
	return workflow.registry.get(source_id)


@sessions_router.post('/{session_id}/sources/{source_id}/priority')
async def toggle_priority(source_id: str, workflow: EssayWorkflow = Depends(get_workflow)):
	workflow.registry.toggle_priority(source_id)
	return workflow.registry.get(source_id)


@sessions_router.delete('/{session_id}/sources/{source_id}', status_code=204)
async def remove_source(source_id: str, workflow: EssayWorkflow = Depends(get_workflow)):
	workflow.registry.remove(source_id)


@sessions_router.post('/{session_id}/sources/reorder')
async def reorder_sources(body: ReorderBody, workflow: EssayWorkflow = Depends(get_workflow)):
	workflow.registry.reorder(body.group, body.from_index, body.to_index)
	return workflow.registry.list_items(body.group)


@sessions_router.get('/{session_id}/chunks')
async def list_chunks(workflow: EssayWorkflow = Depends(get_workflow)):
	return workflow.chunks()


@sessions_router.post('/{session_id}/references/analyze')
async def analyze_references(body: AnalyzeReferencesBody, workflow: EssayWorkflow = Depends(get_workflow)):
	selection = workflow.analyze_references(body.prompt, body.essay_topic)
	return {
		'selected_ids': selection.selected_ids,
		'excluded_ids': selection.excluded_ids,
		'reasoning': selection.reasoning,
		'scores': selection.scores,
		'total_references': selection.total_references,
		'chunk_refs': workflow.chunk_refs_for(selection),
	}


# Outlines


@sessions_router.post('/{session_id}/outlines', status_code=201)
async def plan_outline(body: OutlineBody, workflow: EssayWorkflow = Depends(get_workflow)):
	chunk_refs = None
	if body.use_reference_selection and not body.chunk_refs:
		selection = workflow.analyze_references(body.prompt, body.essay_topic)
		chunk_refs = workflow.chunk_refs_for(selection)

	return await workflow.plan_outline(body.to_request(chunk_refs))


@sessions_router.get('/{session_id}/outlines/{outline_id}')
async def get_outline(outline_id: str, workflow: EssayWorkflow = Depends(get_workflow)):
	return workflow.get_outline(outline_id)


@sessions_router.post('/{session_id}/outlines/{outline_id}/paragraphs/{paragraph_index}/expand')
async def expand_paragraph(outline_id: str, paragraph_index: int, workflow: EssayWorkflow = Depends(get_workflow)):
	return await workflow.expand_paragraph(outline_id, paragraph_index)


@sessions_router.post('/{session_id}/outlines/{outline_id}/expand-all')
async def expand_all(outline_id: str, workflow: EssayWorkflow = Depends(get_workflow)):
	return await workflow.expand_all(outline_id)


@sessions_router.post('/{session_id}/outlines/{outline_id}/assemble')
async def assemble(outline_id: str, body: AssembleBody, workflow: EssayWorkflow = Depends(get_workflow)):
	return {'text': workflow.assemble(outline_id, body.edits, body.include_citations)}


@sessions_router.post('/{session_id}/outlines/{outline_id}/export')
async def export_essay(outline_id: str, body: ExportBody, workflow: EssayWorkflow = Depends(get_workflow)):
	text = workflow.export_essay(
		outline_id,
		body.edits,
		citation_style=body.citation_style,
		include_citations=body.include_citations,
		include_references=body.include_references,
	)
	return {'text': text, 'stats': workflow.essay_stats(outline_id, body.edits)}


@sessions_router.get('/{session_id}/outlines/{outline_id}/audit')
async def audit_outline(outline_id: str, workflow: EssayWorkflow = Depends(get_workflow)):
	return workflow.audit(outline_id)
