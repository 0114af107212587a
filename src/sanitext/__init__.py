from .accents import fold_accents
from .paths import normalize_name, normalize_path
from .sanitize import DEFAULT_POLICY, UNSAFE_TAGS, SanitizationPolicy, clean_attributes, sanitize_html
from .strip import strip_html
from .tokenizer import Tokenizer, TokenizerOpts
from .tokens import ParseError, TokenizationError

__all__ = [
    "DEFAULT_POLICY",
    "UNSAFE_TAGS",
    "ParseError",
    "SanitizationPolicy",
    "TokenizationError",
    "Tokenizer",
    "TokenizerOpts",
    "clean_attributes",
    "fold_accents",
    "normalize_name",
    "normalize_path",
    "sanitize_html",
    "strip_html",
]
