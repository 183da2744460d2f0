import re

from grounded_essay.models import UnsupportedFlag
from grounded_essay.modules.writing.drafting import ParsedSentence

UNSUPPORTED_REASON = 'not supported by provided materials'

TRANSITIONAL_PHRASES = sorted(
	[
		'in conclusion',
		'to conclude',
		'in summary',
		'to summarize',
		'to sum up',
		'overall',
		'furthermore',
		'moreover',
		'in addition',
		'additionally',
		'however',
		'therefore',
		'thus',
		'hence',
		'first',
		'firstly',
		'second',
		'secondly',
		'third',
		'finally',
		'lastly',
		'next',
		'meanwhile',
		'for example',
		'for instance',
		'consequently',
		'as a result',
		'on the other hand',
		'in contrast',
		'similarly',
		'likewise',
		'with this in mind',
		'taken together',
		'turning to',
	],
	key=len,
	reverse=True,
)

STRUCTURAL_OPENERS = (
	'this essay will',
	'this paragraph will',
	'this section will',
	'the next paragraph',
	'the following paragraph',
	'the following section',
)


def _words(text: str) -> list[str]:
	return re.findall(r"[a-z0-9']+", text.lower())


def is_transitional(sentence: str, min_substantive_words: int = 3) -> bool:
	"""True for signposting sentences that carry no claim of their own."""
	lowered = ' '.join(_words(sentence))
	if len(lowered.split()) < min_substantive_words:
		return True

	if lowered.startswith(STRUCTURAL_OPENERS):
		return True

	for phrase in TRANSITIONAL_PHRASES:
		if lowered == phrase or lowered.startswith(phrase + ' '):
			remainder = lowered[len(phrase) :].split()
			return len(remainder) < min_substantive_words

	return False


class UnsupportedContentDetector:
	def __init__(self, min_substantive_words: int = 3):
		self.min_substantive_words = min_substantive_words

	def candidate_sentences(self, sentences: list[ParsedSentence]) -> list[ParsedSentence]:
		"""Uncited, substantive sentences; sentences that carried an unresolvable marker are exempt."""
		return [
			s
			for s in sentences
			if not s.is_cited
			and not s.has_unresolved_marker
			and not is_transitional(s.text, self.min_substantive_words)
		]

	def flag_grounded(self, sentences: list[ParsedSentence]) -> list[UnsupportedFlag]:
		return [
			UnsupportedFlag(sentence_text=s.text, reason=UNSUPPORTED_REASON) for s in self.candidate_sentences(sentences)
		]
