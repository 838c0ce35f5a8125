"""Configuration settings for the answer suggestion backend."""

import os
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

# Base paths
PROJECT_ROOT = Path(__file__).parent.parent
SEED_DATA_FILE = Path(os.getenv("SEED_DATA_FILE", str(PROJECT_ROOT / "data" / "seed.json")))

# Server settings
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# LLM settings
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_MAX_TOKENS = 512
LLM_TEMPERATURE = 0.0  # Deterministic for consistency

# Which text backend feeds the generative generator: openai, template or none
GENERATIVE_BACKEND = os.getenv("GENERATIVE_BACKEND", "template").lower()

# Per-generator timeout for a single suggestion request
GENERATOR_TIMEOUT_SECONDS = float(os.getenv("GENERATOR_TIMEOUT_SECONDS", 10))

# Suggestion ranking
MAX_SUGGESTIONS = 5

# Library generator
LIBRARY_MAX_CANDIDATES = 3
LIBRARY_KEYWORD_WEIGHT = 70
LIBRARY_ENTRY_CONFIDENCE_WEIGHT = 0.3
LIBRARY_MIN_CONFIDENCE = 30

# Evidence generator
EVIDENCE_MAX_CANDIDATES = 5
EVIDENCE_CONTROL_WEIGHT = 60
EVIDENCE_RECENCY_MAX_BOOST = 20
EVIDENCE_MIN_CONFIDENCE = 25

# Pattern generator
POLICY_EVIDENCE_CONFIDENCE = 75
TRAINING_EVIDENCE_CONFIDENCE = 70
INCIDENT_EVIDENCE_CONFIDENCE = 70
YES_NO_AFFIRMATIVE_CONFIDENCE = 60
YES_NO_NEGATIVE_CONFIDENCE = 70
YES_NO_DEFAULT_ANSWER = "No"
YES_NO_DEFAULT_CONFIDENCE = 40

# Generative generator
GENERATIVE_TOPIC_CONFIDENCE = 60
GENERATIVE_DEFAULT_CONFIDENCE = 45

# Answer library lifecycle
LIBRARY_INITIAL_CONFIDENCE = 50
LIBRARY_USAGE_INCREMENT = 1

# Improvement diagnostics
LOW_CONFIDENCE_THRESHOLD = 30
MIN_KEY_PHRASES = 3
MIN_ANSWER_LENGTH = 50
STALE_AFTER_DAYS = 90

# TF-IDF settings for key phrase proposals
MIN_DF = 1
MAX_DF = 1.0
NGRAM_RANGE = (1, 2)
PROPOSED_KEY_PHRASES = 5

# Vocabulary that drives the pattern rules and answer templates
POLICY_TERMS = ["policy", "policies", "procedure", "procedures"]
TRAINING_TERMS = ["training", "awareness"]
INCIDENT_TERMS = ["incident", "incidents", "response"]
AFFIRMATIVE_TERMS = ["implemented", "established", "maintained", "policy", "policies"]
NEGATION_TERMS = ["not", "never", "no"]

# Topic keywords for generative confidence lookup
GENERATIVE_TOPICS = {
    "access_control": ["access control", "access controls"],
    "encryption": ["encryption", "encrypted", "encrypt"],
    "monitoring": ["monitoring", "logging", "logs"],
    "backup": ["backup", "backups", "recovery"],
}

# Keywords used to classify promoted answers into library categories
CATEGORY_KEYWORDS = [
    ("ACCESS_CONTROL", ["access", "authentication", "authorization"]),
    ("DATA_PROTECTION", ["encryption", "data protection", "privacy"]),
    ("INCIDENT_RESPONSE", ["incident", "response", "breach"]),
    ("NETWORK_SECURITY", ["network", "firewall", "vpn"]),
    ("PHYSICAL_SECURITY", ["physical", "facility", "building"]),
    ("BUSINESS_CONTINUITY", ["backup", "recovery", "continuity"]),
    ("VENDOR_MANAGEMENT", ["vendor", "third party", "supplier"]),
    ("COMPLIANCE_FRAMEWORK", ["compliance", "audit", "framework"]),
]


class EngineSettings(BaseModel):
    """Scoring weights, thresholds and caps passed explicitly to the engine."""

    max_suggestions: int = Field(MAX_SUGGESTIONS, ge=1)
    generator_timeout_seconds: float = Field(GENERATOR_TIMEOUT_SECONDS, gt=0)

    library_max_candidates: int = LIBRARY_MAX_CANDIDATES
    library_keyword_weight: float = LIBRARY_KEYWORD_WEIGHT
    library_entry_confidence_weight: float = LIBRARY_ENTRY_CONFIDENCE_WEIGHT
    library_min_confidence: float = LIBRARY_MIN_CONFIDENCE

    evidence_max_candidates: int = EVIDENCE_MAX_CANDIDATES
    evidence_control_weight: float = EVIDENCE_CONTROL_WEIGHT
    evidence_recency_max_boost: float = EVIDENCE_RECENCY_MAX_BOOST
    evidence_min_confidence: float = EVIDENCE_MIN_CONFIDENCE

    policy_evidence_confidence: float = POLICY_EVIDENCE_CONFIDENCE
    training_evidence_confidence: float = TRAINING_EVIDENCE_CONFIDENCE
    incident_evidence_confidence: float = INCIDENT_EVIDENCE_CONFIDENCE
    yes_no_affirmative_confidence: float = YES_NO_AFFIRMATIVE_CONFIDENCE
    yes_no_negative_confidence: float = YES_NO_NEGATIVE_CONFIDENCE
    yes_no_default_answer: str = YES_NO_DEFAULT_ANSWER
    yes_no_default_confidence: float = YES_NO_DEFAULT_CONFIDENCE
    pattern_min_confidence: float = 0

    generative_topic_confidence: float = GENERATIVE_TOPIC_CONFIDENCE
    generative_default_confidence: float = GENERATIVE_DEFAULT_CONFIDENCE
    generative_min_confidence: float = 0

    library_initial_confidence: float = LIBRARY_INITIAL_CONFIDENCE
    library_usage_increment: float = LIBRARY_USAGE_INCREMENT

    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD
    min_key_phrases: int = MIN_KEY_PHRASES
    min_answer_length: int = MIN_ANSWER_LENGTH
    stale_after_days: int = STALE_AFTER_DAYS
    proposed_key_phrases: int = PROPOSED_KEY_PHRASES
    ngram_range: Tuple[int, int] = NGRAM_RANGE
