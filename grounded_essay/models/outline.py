from dataclasses import dataclass, field
from enum import Enum

from grounded_essay.errors import NotFoundError


class GenerationMode(Enum):
	GROUNDED = 'grounded'
	MIXED = 'mixed'
	TEACH = 'teach'


class AcademicLevel(Enum):
	HIGH_SCHOOL = 'high-school'
	UNDERGRADUATE = 'undergraduate'
	GRADUATE = 'graduate'
	PROFESSIONAL = 'professional'


class CitationStyle(Enum):
	APA = 'apa'
	MLA = 'mla'
	HARVARD = 'harvard'
	CHICAGO = 'chicago'
	NONE = 'none'


class ExpansionState(Enum):
	PLANNED = 'planned'
	EXPANDING = 'expanding'
	EXPANDED = 'expanded'
	FAILED = 'failed'


@dataclass(frozen=True)
class ChunkRef:
	label: str
	excerpt_text: str


@dataclass(frozen=True)
class UsedChunk:
	label: str
	page: int | None = None


@dataclass(frozen=True)
class Citation:
	span_text: str
	source_label: str


@dataclass(frozen=True)
class UnsupportedFlag:
	sentence_text: str
	reason: str


@dataclass(frozen=True)
class ParagraphExpansion:
	text: str
	citations: list[Citation]
	used_chunks: list[UsedChunk]
	unsupported_flags: list[UnsupportedFlag]


@dataclass
class Paragraph:
	title: str
	intended_chunks: list[ChunkRef]
	suggested_word_count: int
	expansion_state: ExpansionState = ExpansionState.PLANNED
	expanded_text: str | None = None
	used_chunks: list[UsedChunk] | None = None
	citations: list[Citation] | None = None
	unsupported_flags: list[UnsupportedFlag] | None = None
	last_error: str | None = None

	@property
	def is_expanded(self) -> bool:
		return self.expansion_state == ExpansionState.EXPANDED

	@property
	def is_expanding(self) -> bool:
		return self.expansion_state == ExpansionState.EXPANDING

	def begin_expansion(self) -> ExpansionState:
		"""Enter Expanding and return the state to restore on cancellation."""
		previous = self.expansion_state
		self.expansion_state = ExpansionState.EXPANDING
		return previous

	def complete_expansion(self, expansion: ParagraphExpansion) -> None:
		if not expansion.text.strip():
			raise ValueError('An expanded paragraph cannot have empty text')

		self.expanded_text = expansion.text
		self.citations = list(expansion.citations)
		self.used_chunks = list(expansion.used_chunks)
		self.unsupported_flags = list(expansion.unsupported_flags)
		self.last_error = None
		self.expansion_state = ExpansionState.EXPANDED

	def fail_expansion(self, error: str) -> None:
		# Prior text, citations and flags survive a failed retry
		self.last_error = error
		self.expansion_state = ExpansionState.FAILED

	def restore_state(self, state: ExpansionState) -> None:
		self.expansion_state = state


@dataclass
class Outline:
	outline_id: str
	thesis: str
	paragraphs: list[Paragraph]
	retrieved_chunk_count: int
	created_at: str | None = None

	def get_paragraph(self, paragraph_index: int) -> Paragraph:
		if not 0 <= paragraph_index < len(self.paragraphs):
			raise NotFoundError(
				f'Paragraph index {paragraph_index} out of range for outline {self.outline_id} '
				f'({len(self.paragraphs)} paragraphs)'
			)
		return self.paragraphs[paragraph_index]


@dataclass(frozen=True)
class OutlineRequest:
	prompt: str
	target_word_count: int
	academic_level: AcademicLevel = AcademicLevel.UNDERGRADUATE
	citation_style: CitationStyle = CitationStyle.APA
	mode: GenerationMode = GenerationMode.GROUNDED
	chunk_refs: list[str] = field(default_factory=list)
	rubric: str | None = None
	essay_topic: str | None = None
	style_sample: str | None = None


@dataclass
class OutlineRecord:
	outline: Outline
	request: OutlineRequest


@dataclass(frozen=True)
class ParagraphResult:
	paragraph_index: int
	ok: bool
	paragraph: Paragraph
	error: str | None = None
	status: int | None = None
