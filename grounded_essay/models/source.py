from dataclasses import dataclass, field
from enum import Enum


class SourceGroup(Enum):
	NOTES = 'notes'
	REFERENCES = 'references'


class OriginKind(Enum):
	FILE = 'file'
	PASTED_TEXT = 'text'
	URL = 'url'


@dataclass
class SourceItem:
	id: str
	group: SourceGroup
	display_name: str
	excerpt_text: str
	priority: bool
	order: int
	origin_kind: OriginKind
	page_count: int | None = None


@dataclass(frozen=True)
class UploadRecord:
	file_id: str
	file_name: str
	excerpt_text: str
	page_count: int | None = None


@dataclass(frozen=True)
class EvidenceChunk:
	label: str
	source_item_id: str
	excerpt_text: str
	page_number: int | None = None


@dataclass(frozen=True)
class ReferenceSelection:
	selected_ids: list[str]
	excluded_ids: list[str]
	reasoning: str
	scores: dict[str, float] = field(default_factory=dict)

	@property
	def total_references(self) -> int:
		return len(self.selected_ids) + len(self.excluded_ids)
