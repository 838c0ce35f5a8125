"""Services package for the answer suggestion backend."""

from .confidence_scorer import ConfidenceScorer
from .csv_processor import CSVProcessor
from .key_phrase_extractor import KeyPhraseExtractor
from .llm_generator import OpenAITextCapability, TemplateTextCapability, build_text_capability
from .library_generator import LibraryGenerator
from .evidence_generator import EvidenceGenerator
from .pattern_generator import PatternGenerator
from .generative_generator import GenerativeGenerator
from .suggestion_engine import SuggestionEngine
from .answer_library import AnswerLibraryService

__all__ = [
    "ConfidenceScorer", "CSVProcessor", "KeyPhraseExtractor",
    "OpenAITextCapability", "TemplateTextCapability", "build_text_capability",
    "LibraryGenerator", "EvidenceGenerator", "PatternGenerator", "GenerativeGenerator",
    "SuggestionEngine", "AnswerLibraryService",
]
