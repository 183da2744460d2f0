from grounded_essay.models import EvidenceChunk, IssueType, Paragraph, Severity, ValidationIssue


class CitationValidator:
	def validate(
		self, paragraph: Paragraph, paragraph_index: int, known_chunks: dict[str, EvidenceChunk]
	) -> list[ValidationIssue]:
		citation_issues: list[ValidationIssue] = []
		text = paragraph.expanded_text or ''

		for citation in paragraph.citations or []:
			if citation.span_text not in text:
				citation_issues.append(
					ValidationIssue(
						issue_type=IssueType.CITATION_SPAN_MISSING,
						severity=Severity.CRITICAL,
						message=f"Cited span '{citation.span_text}' does not occur in paragraph {paragraph_index}.",
						suggestion='Re-expand the paragraph so citations bind to its current text.',
						paragraph_index=paragraph_index,
					)
				)

			if citation.source_label not in known_chunks:
				# Sources removed after expansion leave dangling labels
				citation_issues.append(
					ValidationIssue(
						issue_type=IssueType.CITATION_UNKNOWN_LABEL,
						severity=Severity.WARNING,
						message=f"Label '{citation.source_label}' is no longer in the evidence index.",
						suggestion='Restore the source or re-expand the paragraph.',
						paragraph_index=paragraph_index,
					)
				)

		for flag in paragraph.unsupported_flags or []:
			if flag.sentence_text not in text:
				citation_issues.append(
					ValidationIssue(
						issue_type=IssueType.FLAG_SENTENCE_MISSING,
						severity=Severity.CRITICAL,
						message=f"Flagged sentence '{flag.sentence_text}' does not occur in paragraph {paragraph_index}.",
						suggestion='Re-expand the paragraph.',
						paragraph_index=paragraph_index,
					)
				)

		return citation_issues
