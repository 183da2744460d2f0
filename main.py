import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from grounded_essay.config.settings import settings
from grounded_essay.core.workflow import EssayWorkflow
from grounded_essay.errors import EssayError
from grounded_essay.llm.client import create_llm_client_from_settings
from grounded_essay.models import AcademicLevel, CitationStyle, GenerationMode, OriginKind, OutlineRequest, SourceGroup
from grounded_essay.utils.logger import logger, setup_logger


def load_sources(workflow: EssayWorkflow, sources: list[dict]) -> None:
	for source in sources:
		item = workflow.registry.add_source(
			SourceGroup(source.get('group', 'notes')),
			source['content'],
			OriginKind(source.get('origin_kind', 'text')),
			display_name=source.get('display_name'),
			page_count=source.get('page_count'),
			source_id=source.get('id'),
		)
		if source.get('priority'):
			workflow.registry.toggle_priority(item.id)


def build_request(workflow: EssayWorkflow, input_data: dict) -> OutlineRequest:
	chunk_refs = input_data.get('chunk_refs', [])
	if not chunk_refs and input_data.get('use_reference_selection'):
		selection = workflow.analyze_references(input_data['prompt'], input_data.get('essay_topic'))
		chunk_refs = workflow.chunk_refs_for(selection)

	return OutlineRequest(
		prompt=input_data['prompt'],
		target_word_count=input_data['target_word_count'],
		academic_level=AcademicLevel(input_data.get('academic_level', 'undergraduate')),
		citation_style=CitationStyle(input_data.get('citation_style', 'apa')),
		mode=GenerationMode(input_data.get('mode', 'grounded')),
		chunk_refs=chunk_refs,
		rubric=input_data.get('rubric'),
		essay_topic=input_data.get('essay_topic'),
		style_sample=input_data.get('style_sample'),
	)


async def run_session(workflow: EssayWorkflow, input_data: dict, include_citations: bool) -> str:
	load_sources(workflow, input_data.get('sources', []))

	logger.info('=' * 60)
	logger.info('PLANNING OUTLINE')
	logger.info('=' * 60)
	outline = await workflow.plan_outline(build_request(workflow, input_data))
	logger.info(f'Thesis: {outline.thesis}')
	for idx, paragraph in enumerate(outline.paragraphs):
		logger.info(f'  {idx + 1}. {paragraph.title} ({paragraph.suggested_word_count} words)')

	logger.info('=' * 60)
	logger.info('EXPANDING PARAGRAPHS')
	logger.info('=' * 60)
	results = await workflow.expand_all(outline.outline_id)
	for result in results:
		if not result.ok:
			logger.warning(f'Paragraph {result.paragraph_index + 1} failed: {result.error}')

	edits = {int(k): v for k, v in input_data.get('edits', {}).items()}
	stats = workflow.essay_stats(outline.outline_id, edits)
	logger.info(
		f'Essay complete: {stats["total_words"]} words, {stats["citation_count"]} citations, '
		f'{stats["paragraphs_expanded"]}/{stats["paragraph_count"]} paragraphs expanded'
	)

	return workflow.export_essay(
		outline.outline_id,
		edits,
		include_citations=include_citations,
		include_references=input_data.get('include_references', True),
	)


def serve(host: str, port: int) -> None:
	import uvicorn

	from grounded_essay.api.main import create_app

	uvicorn.run(create_app(), host=host, port=port)


def main():
	load_dotenv()

	parser = argparse.ArgumentParser(description='Grounded essay writer')
	parser.add_argument('input_file', nargs='?', help='JSON file with prompt, settings and sources')
	parser.add_argument('--output', '-o', help='Write the essay to this file instead of stdout')
	parser.add_argument('--no-citations', action='store_true', help='Leave inline citation annotations out')
	parser.add_argument('--serve', action='store_true', help='Run the HTTP API instead')
	parser.add_argument('--host', default='127.0.0.1')
	parser.add_argument('--port', type=int, default=8000)
	parser.add_argument('--log-level', default=None, help='Override LOG_LEVEL')

	args = parser.parse_args()
	setup_logger(args.log_level)

	if args.serve:
		serve(args.host, args.port)
		return

	if not args.input_file:
		parser.error('input_file is required unless --serve is given')

	input_file = Path(args.input_file)
	if not input_file.exists():
		print(f'Error: Input file not found: {input_file}')
		sys.exit(1)

	try:
		with open(input_file) as f:
			input_data = json.load(f)
	except json.JSONDecodeError as e:
		print(f'Error: Invalid JSON in {input_file}')
		print(f'  {e}')
		sys.exit(1)

	llm_client = create_llm_client_from_settings(settings)
	workflow = EssayWorkflow(llm_client, settings=settings)

	essay = asyncio.run(run_session(workflow, input_data, include_citations=not args.no_citations))

	usage = llm_client.get_usage_stats()
	logger.info(f'Tokens used: input={usage["input_tokens"]}, output={usage["output_tokens"]}')

	if args.output:
		Path(args.output).write_text(essay, encoding='utf-8')
		print(f'Essay written to {args.output}')
	else:
		print(essay)


if __name__ == '__main__':
	try:
		main()
	except KeyboardInterrupt:
		print('\n\nGeneration interrupted.')
		sys.exit(0)
	except (EssayError, ValueError) as e:
		print(f'\nError: {e}')
		sys.exit(1)
