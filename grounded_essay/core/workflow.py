from typing import Protocol

from grounded_essay.config.settings import Settings
from grounded_essay.errors import UsageLimitError
from grounded_essay.llm.client import GenerationCapability
from grounded_essay.models import (
	CitationStyle,
	EvidenceChunk,
	ExpansionState,
	Outline,
	OutlineRecord,
	OutlineRequest,
	ParagraphResult,
	ReferenceSelection,
	SourceGroup,
	ValidationResult,
)
from grounded_essay.modules.evidence import index, select_references
from grounded_essay.modules.export import assemble, essay_stats, export_essay
from grounded_essay.modules.planning import OutlinePlanner
from grounded_essay.modules.sources import SourceRegistry
from grounded_essay.modules.validation import ValidationModule
from grounded_essay.modules.writing.writing import ParagraphExpander
from grounded_essay.storage import OutlineStore
from grounded_essay.utils.logger import logger


class UsageGate(Protocol):
	def can_generate_essay(self) -> bool: ...


class AllowAllUsageGate:
	def can_generate_essay(self) -> bool:
		return True


class EssayWorkflow:
	"""All essay operations for one user session.

	The evidence index is rebuilt from the registry on every plan and expand
	call, so source edits and removals take effect on the next generation.
	"""

	def __init__(
		self,
		generator: GenerationCapability,
		usage_gate: UsageGate | None = None,
		store: OutlineStore | None = None,
		settings: Settings | None = None,
	):
		if settings is None:
			from grounded_essay.config.settings import settings as default_settings

			settings = default_settings

		self.settings = settings
		self.usage_gate = usage_gate or AllowAllUsageGate()
		self.store = store or OutlineStore(settings.STORAGE_PATH if settings.PERSIST_OUTLINES else None)
		self.registry = SourceRegistry()
		self.planner = OutlinePlanner(generator, settings)
		self.expander = ParagraphExpander(generator, settings)
		self.validation_module = ValidationModule()

	def chunks(self) -> list[EvidenceChunk]:
		return index(self.registry.list_items())

	def analyze_references(self, prompt: str, essay_topic: str | None = None) -> ReferenceSelection:
		selection = select_references(
			self.registry.list_items(SourceGroup.REFERENCES),
			prompt,
			essay_topic,
			min_score=self.settings.REFERENCE_MIN_SCORE,
			top_k=self.settings.REFERENCE_TOP_K,
		)
		logger.info(selection.reasoning)
		return selection

	def chunk_refs_for(self, selection: ReferenceSelection) -> list[str]:
		"""Chunk labels of the selected references plus every notes chunk."""
		selected = set(selection.selected_ids)
		return [
			c.label
			for c in self.chunks()
			if c.source_item_id in selected or self._group_of(c.source_item_id) == SourceGroup.NOTES
		]

	async def plan_outline(self, request: OutlineRequest) -> Outline:
		if not self.usage_gate.can_generate_essay():
			raise UsageLimitError('Essay generation limit reached')

		outline = await self.planner.plan(request, self.chunks())
		self.store.save(OutlineRecord(outline=outline, request=request))
		return outline

	async def expand_paragraph(self, outline_id: str, paragraph_index: int) -> ParagraphResult:
		record = self.store.get(outline_id)
		result = await self.expander.expand(record, paragraph_index, self.chunks(), self._priority_ids())
		self.store.save(record)
		return result

	async def expand_all(self, outline_id: str) -> list[ParagraphResult]:
		record = self.store.get(outline_id)
		results = []

		for idx, paragraph in enumerate(record.outline.paragraphs):
			if paragraph.expansion_state in (ExpansionState.EXPANDED, ExpansionState.EXPANDING):
				logger.info(f'Paragraph {idx} is {paragraph.expansion_state.value}, skipping')
				continue
			results.append(await self.expand_paragraph(outline_id, idx))

		failed = [r.paragraph_index for r in results if not r.ok]
		if failed:
			logger.warning(f'Expand-all for {outline_id} finished with failed paragraphs: {failed}')
		else:
			logger.info(f'Expand-all for {outline_id} finished: {len(results)} paragraphs expanded')
		return results

	def get_outline(self, outline_id: str) -> Outline:
		return self.store.get(outline_id).outline

	def assemble(self, outline_id: str, edits: dict[int, str] | None = None, include_citations: bool = False) -> str:
		return assemble(self.get_outline(outline_id), edits, include_citations)

	def export_essay(
		self,
		outline_id: str,
		edits: dict[int, str] | None = None,
		citation_style: CitationStyle | None = None,
		include_citations: bool = True,
		include_references: bool = True,
	) -> str:
		record = self.store.get(outline_id)
		return export_essay(
			record.outline,
			self.registry.list_items(),
			edits,
			citation_style=citation_style or record.request.citation_style,
			include_citations=include_citations,
			include_references=include_references,
		)

	def essay_stats(self, outline_id: str, edits: dict[int, str] | None = None) -> dict[str, int]:
		return essay_stats(self.get_outline(outline_id), edits)

	def audit(self, outline_id: str) -> ValidationResult:
		return self.validation_module.validate_outline(self.get_outline(outline_id), self.chunks())

	def _priority_ids(self) -> frozenset[str]:
		return frozenset(item.id for item in self.registry.list_items() if item.priority)

	def _group_of(self, source_id: str) -> SourceGroup | None:
		item = self.registry.get(source_id)
		return item.group if item else None
