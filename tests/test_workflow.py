import asyncio
from unittest.mock import MagicMock

import pytest

from grounded_essay.core import EssayWorkflow
from grounded_essay.errors import GenerationError, NotFoundError, UsageLimitError
from grounded_essay.models import (
	CitationStyle,
	ExpansionState,
	GenerationMode,
	OriginKind,
	OutlineRequest,
	SourceGroup,
)
from grounded_essay.storage import OutlineStore

from conftest import N1_TEXT, OUTLINE_JSON, PARAGRAPH_0, PARAGRAPH_1, R1_TEXT


def _workflow(generator, settings, **kwargs):
	workflow = EssayWorkflow(generator, settings=settings, **kwargs)
	workflow.registry.add_source(
		SourceGroup.REFERENCES, R1_TEXT, OriginKind.FILE, display_name='Plant Biology', page_count=1, source_id='R1'
	)
	workflow.registry.add_source(SourceGroup.NOTES, N1_TEXT, OriginKind.PASTED_TEXT, source_id='N1')
	return workflow


def _request(**overrides):
	fields = {'prompt': 'Explain how photosynthesis works', 'target_word_count': 300, 'mode': GenerationMode.GROUNDED}
	fields.update(overrides)
	return OutlineRequest(**fields)


def test_end_to_end_grounded_essay(make_generator, test_settings):
	generator = make_generator(OUTLINE_JSON, PARAGRAPH_0)
	workflow = _workflow(generator, test_settings)

	assert [c.label for c in workflow.chunks()] == ['R1:p1', 'N1:p1']

	outline = asyncio.run(workflow.plan_outline(_request()))
	assert outline.paragraphs[0].intended_chunks[0].label == 'R1:p1'

	result = asyncio.run(workflow.expand_paragraph(outline.outline_id, 0))

	paragraph = workflow.get_outline(outline.outline_id).paragraphs[0]
	assert result.ok
	assert paragraph.expansion_state == ExpansionState.EXPANDED
	assert 'R1:p1' in [c.source_label for c in paragraph.citations]
	assert workflow.get_outline(outline.outline_id).paragraphs[1].expansion_state == ExpansionState.PLANNED

	essay = workflow.assemble(outline.outline_id, include_citations=True)
	assert 'Photosynthesis converts light into chemical energy (R1:p1).' in essay
	assert essay.endswith('Questions about efficiency')


def test_usage_gate_refusal_blocks_planning(make_generator, test_settings):
	generator = make_generator(OUTLINE_JSON)
	gate = MagicMock()
	gate.can_generate_essay.return_value = False
	workflow = _workflow(generator, test_settings, usage_gate=gate)

	with pytest.raises(UsageLimitError):
		asyncio.run(workflow.plan_outline(_request()))

	generator.generate.assert_not_called()
	assert workflow.store.list_ids() == []


def test_planning_failure_creates_no_outline(make_generator, test_settings):
	workflow = _workflow(make_generator('not json'), test_settings)

	with pytest.raises(GenerationError):
		asyncio.run(workflow.plan_outline(_request()))

	assert workflow.store.list_ids() == []


def test_expand_all_continues_after_failure(make_generator, test_settings):
	generator = make_generator(OUTLINE_JSON, GenerationError('boom', status=502), PARAGRAPH_1)
	workflow = _workflow(generator, test_settings)
	outline = asyncio.run(workflow.plan_outline(_request()))

	results = asyncio.run(workflow.expand_all(outline.outline_id))

	assert [(r.paragraph_index, r.ok) for r in results] == [(0, False), (1, True)]
	assert outline.paragraphs[0].expansion_state == ExpansionState.FAILED
	assert outline.paragraphs[1].is_expanded


def test_expand_all_skips_expanded_paragraphs(make_generator, test_settings):
	generator = make_generator(OUTLINE_JSON, PARAGRAPH_0, PARAGRAPH_1)
	workflow = _workflow(generator, test_settings)
	outline = asyncio.run(workflow.plan_outline(_request()))
	asyncio.run(workflow.expand_paragraph(outline.outline_id, 0))

	results = asyncio.run(workflow.expand_all(outline.outline_id))

	assert [r.paragraph_index for r in results] == [1]
	assert generator.generate.await_count == 3


def test_removing_a_source_keeps_expanded_text(make_generator, test_settings):
	generator = make_generator(OUTLINE_JSON, PARAGRAPH_0)
	workflow = _workflow(generator, test_settings)
	outline = asyncio.run(workflow.plan_outline(_request()))
	asyncio.run(workflow.expand_paragraph(outline.outline_id, 0))

	workflow.registry.remove('R1')

	paragraph = workflow.get_outline(outline.outline_id).paragraphs[0]
	assert paragraph.is_expanded
	assert paragraph.citations[0].source_label == 'R1:p1'
	assert [c.label for c in workflow.chunks()] == ['N1:p1']

	audit = workflow.audit(outline.outline_id)
	assert audit.passed
	assert any(i.issue_type.value == 'citation_unknown_label' for i in audit.issues)


def test_reference_selection_feeds_chunk_refs(make_generator, test_settings):
	workflow = _workflow(make_generator(OUTLINE_JSON), test_settings)
	workflow.registry.add_source(
		SourceGroup.REFERENCES, 'Stock markets fluctuate daily.', OriginKind.URL, 'Finance primer', source_id='F'
	)

	selection = workflow.analyze_references('How does photosynthesis convert light energy?')
	chunk_refs = workflow.chunk_refs_for(selection)

	assert selection.selected_ids == ['R1']
	assert chunk_refs == ['R1:p1', 'N1:p1']

	outline = asyncio.run(workflow.plan_outline(_request(chunk_refs=chunk_refs)))
	assert outline.retrieved_chunk_count == 2


def test_export_uses_request_citation_style(make_generator, test_settings):
	generator = make_generator(OUTLINE_JSON, PARAGRAPH_0)
	workflow = _workflow(generator, test_settings)
	outline = asyncio.run(workflow.plan_outline(_request(citation_style=CitationStyle.MLA)))
	asyncio.run(workflow.expand_paragraph(outline.outline_id, 0))

	text = workflow.export_essay(outline.outline_id)

	assert text.startswith('Thesis: ')
	assert text.endswith('Works Cited\n\n"Plant Biology." n.d.')
	assert workflow.essay_stats(outline.outline_id)['citation_count'] == 1


def test_unknown_outline(make_generator, test_settings):
	workflow = _workflow(make_generator(), test_settings)

	with pytest.raises(NotFoundError):
		workflow.get_outline('outline_missing')
	with pytest.raises(NotFoundError):
		asyncio.run(workflow.expand_paragraph('outline_missing', 0))


def test_outlines_persist_to_disk(make_generator, test_settings, tmp_path):
	generator = make_generator(OUTLINE_JSON, PARAGRAPH_0)
	workflow = _workflow(generator, test_settings, store=OutlineStore(tmp_path))
	outline = asyncio.run(workflow.plan_outline(_request()))
	asyncio.run(workflow.expand_paragraph(outline.outline_id, 0))

	reloaded = OutlineStore(tmp_path).get(outline.outline_id)

	assert reloaded.outline.thesis == outline.thesis
	assert reloaded.request.mode == GenerationMode.GROUNDED
	assert reloaded.outline.paragraphs[0].expansion_state == ExpansionState.EXPANDED
	assert reloaded.outline.paragraphs[0].citations == outline.paragraphs[0].citations
	assert reloaded.outline.paragraphs[1].expansion_state == ExpansionState.PLANNED
	assert OutlineStore(tmp_path).list_ids() == [outline.outline_id]


def test_interrupted_expansion_loads_as_failed(make_generator, test_settings, tmp_path):
	workflow = _workflow(make_generator(OUTLINE_JSON), test_settings, store=OutlineStore(tmp_path))
	outline = asyncio.run(workflow.plan_outline(_request()))
	outline.paragraphs[0].begin_expansion()
	workflow.store.save(workflow.store.get(outline.outline_id))

	reloaded = OutlineStore(tmp_path).get(outline.outline_id)

	assert reloaded.outline.paragraphs[0].expansion_state == ExpansionState.FAILED
	assert reloaded.outline.paragraphs[0].last_error == 'Expansion interrupted'
