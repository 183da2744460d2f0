import datetime

from grounded_essay.models import (
	EvidenceChunk,
	IssueType,
	Outline,
	Severity,
	ValidationIssue,
	ValidationResult,
)
from grounded_essay.modules.evidence import chunks_by_label
from grounded_essay.modules.validation.citation import CitationValidator
from grounded_essay.utils.logger import logger

WORD_COUNT_TOLERANCE = 0.25


class ValidationModule:
	"""Audits an outline's expanded paragraphs without calling the generator."""

	def __init__(self, word_count_tolerance: float = WORD_COUNT_TOLERANCE):
		self.citation_validator = CitationValidator()
		self.word_count_tolerance = word_count_tolerance

	def validate_outline(self, outline: Outline, chunks: list[EvidenceChunk]) -> ValidationResult:
		logger.info(f'Validating outline {outline.outline_id}')

		known = chunks_by_label(chunks)
		issues: list[ValidationIssue] = []

		for idx, paragraph in enumerate(outline.paragraphs):
			if not paragraph.is_expanded:
				continue

			if not (paragraph.expanded_text or '').strip():
				issues.append(
					ValidationIssue(
						issue_type=IssueType.EMPTY_EXPANSION,
						severity=Severity.CRITICAL,
						message=f'Paragraph {idx} is marked expanded but has no text.',
						suggestion='Re-expand the paragraph.',
						paragraph_index=idx,
					)
				)
				continue

			issues.extend(self.citation_validator.validate(paragraph, idx, known))

			for flag in paragraph.unsupported_flags or []:
				issues.append(
					ValidationIssue(
						issue_type=IssueType.UNSUPPORTED_CONTENT,
						severity=Severity.INFO,
						message=f"'{flag.sentence_text}' ({flag.reason})",
						suggestion='Add a supporting source or rewrite the sentence.',
						paragraph_index=idx,
					)
				)

			word_count = len(paragraph.expanded_text.split())
			target = paragraph.suggested_word_count
			min_words = int(target * (1 - self.word_count_tolerance))
			max_words = int(target * (1 + self.word_count_tolerance)) + 1
			if not (min_words <= word_count <= max_words):
				issues.append(
					ValidationIssue(
						issue_type=IssueType.WORD_COUNT,
						severity=Severity.WARNING,
						message=f'Paragraph {idx} has {word_count} words, planned {target}.',
						suggestion=f'Adjust paragraph length to be between {min_words} and {max_words} words.',
						paragraph_index=idx,
					)
				)

		passed = not any(issue.severity == Severity.CRITICAL for issue in issues)

		return ValidationResult(
			validation_id=f'val-{outline.outline_id}-{datetime.datetime.now().timestamp()}',
			outline_id=outline.outline_id,
			passed=passed,
			issues=issues,
			timestamp=datetime.datetime.now(datetime.UTC).isoformat(),
		)
