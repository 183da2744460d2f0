from dataclasses import dataclass
from enum import Enum


class IssueType(Enum):
	CITATION_SPAN_MISSING = 'citation_span_missing'
	CITATION_UNKNOWN_LABEL = 'citation_unknown_label'
	FLAG_SENTENCE_MISSING = 'flag_sentence_missing'
	UNSUPPORTED_CONTENT = 'unsupported_content'
	EMPTY_EXPANSION = 'empty_expansion'
	WORD_COUNT = 'word_count'


class Severity(Enum):
	CRITICAL = 'critical'
	WARNING = 'warning'
	INFO = 'info'


@dataclass(frozen=True)
class ValidationIssue:
	issue_type: IssueType
	severity: Severity
	message: str
	suggestion: str | None
	paragraph_index: int | None


@dataclass(frozen=True)
class ValidationResult:
	validation_id: str
	outline_id: str
	passed: bool
	issues: list[ValidationIssue]
	timestamp: str
