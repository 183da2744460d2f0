import asyncio

from grounded_essay.config.settings import Settings
from grounded_essay.errors import ExpansionInProgressError, GenerationError
from grounded_essay.llm.client import GenerationCapability, generate_bounded
from grounded_essay.models import (
	EvidenceChunk,
	GenerationMode,
	OutlineRecord,
	ParagraphExpansion,
	ParagraphResult,
	UnsupportedFlag,
)
from grounded_essay.modules.evidence import chunks_by_label, rank_supplementary_chunks
from grounded_essay.modules.validation.contradiction import ContradictionChecker
from grounded_essay.modules.validation.support import UnsupportedContentDetector
from grounded_essay.utils.logger import logger

from .drafting import CitationParser, ParsedParagraph
from .prompt_builder import DraftingContext, build_expansion_prompts


class ParagraphExpander:
	"""Expands one paragraph of an outline per call.

	Each call writes only to its own ``Paragraph``. The paragraph enters
	``Expanding`` before the first await, so a second call for the same index
	is rejected instead of racing the first. Generation failures are kept on
	the paragraph and reported in the result; earlier expansion output is left
	in place.
	"""

	def __init__(self, generator: GenerationCapability, settings: Settings):
		self.generator = generator
		self.settings = settings
		self.citation_parser = CitationParser()
		self.detector = UnsupportedContentDetector(settings.MIN_SUBSTANTIVE_WORDS)
		self.contradiction_checker = ContradictionChecker(generator, settings)

	async def expand(
		self,
		record: OutlineRecord,
		paragraph_index: int,
		chunks: list[EvidenceChunk],
		priority_source_ids: frozenset[str] = frozenset(),
	) -> ParagraphResult:
		outline = record.outline
		paragraph = outline.get_paragraph(paragraph_index)

		if paragraph.is_expanding:
			raise ExpansionInProgressError(outline.outline_id, paragraph_index)

		previous_state = paragraph.begin_expansion()
		logger.info(f'Expanding paragraph {paragraph_index} of {outline.outline_id}: {paragraph.title}')

		try:
			expansion = await self._write_paragraph(record, paragraph_index, chunks, priority_source_ids)
		except asyncio.CancelledError:
			paragraph.restore_state(previous_state)
			logger.warning(f'Expansion of paragraph {paragraph_index} cancelled, state restored')
			raise
		except GenerationError as e:
			paragraph.fail_expansion(str(e))
			logger.error(f'Paragraph {paragraph_index} of {outline.outline_id} failed: {e}')
			return ParagraphResult(
				paragraph_index=paragraph_index, ok=False, paragraph=paragraph, error=str(e), status=e.status
			)
		except Exception as e:
			paragraph.fail_expansion(f'Unexpected error: {e}')
			raise

		paragraph.complete_expansion(expansion)
		logger.info(
			f'Paragraph {paragraph_index} expanded. Words: {len(expansion.text.split())}, '
			f'Citations: {len(expansion.citations)}, Flags: {len(expansion.unsupported_flags)}'
		)
		return ParagraphResult(paragraph_index=paragraph_index, ok=True, paragraph=paragraph)

	async def _write_paragraph(
		self,
		record: OutlineRecord,
		paragraph_index: int,
		chunks: list[EvidenceChunk],
		priority_source_ids: frozenset[str],
	) -> ParagraphExpansion:
		outline = record.outline
		paragraph = outline.paragraphs[paragraph_index]
		known = chunks_by_label(chunks)

		# Intended chunks whose source was removed since planning drop out here
		intended = [known[ref.label] for ref in paragraph.intended_chunks if ref.label in known]
		supplementary = rank_supplementary_chunks(
			chunks,
			paragraph.title,
			exclude_labels={c.label for c in intended},
			limit=self.settings.MAX_SUPPLEMENTARY_CHUNKS,
			priority_ids=set(priority_source_ids),
		)

		context = DraftingContext(
			thesis=outline.thesis,
			paragraph_index=paragraph_index,
			paragraph_title=paragraph.title,
			suggested_word_count=paragraph.suggested_word_count,
			intended_chunks=intended,
			supplementary_chunks=supplementary,
			request=record.request,
			previous_paragraph_title=outline.paragraphs[paragraph_index - 1].title if paragraph_index > 0 else None,
		)

		system_prompt, user_prompt = build_expansion_prompts(context)
		raw_text = await generate_bounded(
			self.generator, system_prompt, user_prompt, self.settings.GENERATION_TIMEOUT_SECONDS
		)

		parsed = self.citation_parser.parse(raw_text, known)
		flags = await self._detect_unsupported(parsed, record.request.mode, intended + supplementary)

		return ParagraphExpansion(
			text=parsed.text,
			citations=parsed.citations,
			used_chunks=parsed.used_chunks,
			unsupported_flags=flags,
		)

	async def _detect_unsupported(
		self, parsed: ParsedParagraph, mode: GenerationMode, evidence: list[EvidenceChunk]
	) -> list[UnsupportedFlag]:
		if mode == GenerationMode.GROUNDED:
			return self.detector.flag_grounded(parsed.sentences)

		candidates = [s.text for s in self.detector.candidate_sentences(parsed.sentences)]
		return await self.contradiction_checker.check(candidates, evidence)
