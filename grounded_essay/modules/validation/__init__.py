from .citation import CitationValidator
from .contradiction import CONTRADICTION_REASON, ContradictionChecker
from .support import UNSUPPORTED_REASON, UnsupportedContentDetector, is_transitional
from .validation import ValidationModule

__all__ = [
	'CONTRADICTION_REASON',
	'CitationValidator',
	'ContradictionChecker',
	'UNSUPPORTED_REASON',
	'UnsupportedContentDetector',
	'ValidationModule',
	'is_transitional',
]
