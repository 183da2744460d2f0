from pydantic import BaseModel, Field

from grounded_essay.models import AcademicLevel, CitationStyle, GenerationMode, OriginKind, OutlineRequest, SourceGroup


class AddSourceBody(BaseModel):
	group: SourceGroup
	content: str
	origin_kind: OriginKind = OriginKind.PASTED_TEXT
	display_name: str | None = None
	page_count: int | None = None
	source_id: str | None = None


class UpdateExcerptBody(BaseModel):
	excerpt_text: str


class ReorderBody(BaseModel):
	group: SourceGroup
	from_index: int
	to_index: int


class AnalyzeReferencesBody(BaseModel):
	prompt: str
	essay_topic: str | None = None


class OutlineBody(BaseModel):
	prompt: str
	# Range checks happen in the planner so they surface as the same 422 errors
	target_word_count: int
	academic_level: AcademicLevel = AcademicLevel.UNDERGRADUATE
	citation_style: CitationStyle = CitationStyle.APA
	mode: GenerationMode = GenerationMode.GROUNDED
	chunk_refs: list[str] = Field(default_factory=list)
	use_reference_selection: bool = False
	rubric: str | None = None
	essay_topic: str | None = None
	style_sample: str | None = None

	def to_request(self, chunk_refs: list[str] | None = None) -> OutlineRequest:
		return OutlineRequest(
			prompt=self.prompt,
			target_word_count=self.target_word_count,
			academic_level=self.academic_level,
			citation_style=self.citation_style,
			mode=self.mode,
			chunk_refs=chunk_refs if chunk_refs is not None else list(self.chunk_refs),
			rubric=self.rubric,
			essay_topic=self.essay_topic,
			style_sample=self.style_sample,
		)


class AssembleBody(BaseModel):
	edits: dict[int, str] = Field(default_factory=dict)
	include_citations: bool = False


class ExportBody(BaseModel):
	edits: dict[int, str] = Field(default_factory=dict)
	citation_style: CitationStyle | None = None
	include_citations: bool = True
	include_references: bool = True
