from .outline import (
	AcademicLevel,
	ChunkRef,
	Citation,
	CitationStyle,
	ExpansionState,
	GenerationMode,
	Outline,
	OutlineRecord,
	OutlineRequest,
	Paragraph,
	ParagraphExpansion,
	ParagraphResult,
	UnsupportedFlag,
	UsedChunk,
)
from .source import (
	EvidenceChunk,
	OriginKind,
	ReferenceSelection,
	SourceGroup,
	SourceItem,
	UploadRecord,
)
from .validation import (
	IssueType,
	Severity,
	ValidationIssue,
	ValidationResult,
)


__all__ = [
	'AcademicLevel',
	'ChunkRef',
	'Citation',
	'CitationStyle',
	'ExpansionState',
	'GenerationMode',
	'Outline',
	'OutlineRecord',
	'OutlineRequest',
	'Paragraph',
	'ParagraphExpansion',
	'ParagraphResult',
	'UnsupportedFlag',
	'UsedChunk',
	'EvidenceChunk',
	'OriginKind',
	'ReferenceSelection',
	'SourceGroup',
	'SourceItem',
	'UploadRecord',
	'IssueType',
	'Severity',
	'ValidationIssue',
	'ValidationResult',
]
