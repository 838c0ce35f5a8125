"""Key phrase proposals for library entries using TF-IDF."""

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from config import EngineSettings
from models import AnswerLibraryEntry
import config

logger = logging.getLogger(__name__)


class KeyPhraseExtractor:
    """Proposes matching vocabulary for entries that have too few key phrases.

    Terms are weighted against the rest of the organization's library, so
    boilerplate shared by every answer ranks low.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

    def propose(
        self,
        entries: List[AnswerLibraryEntry],
        target_ids: Iterable[str],
        top_n: Optional[int] = None
    ) -> Dict[str, List[str]]:
        """
        Propose new key phrases for the target entries.

        Returns:
            Dict of entry id to proposed phrases, best first
        """
        target_ids = set(target_ids)
        top_n = top_n or self.settings.proposed_key_phrases
        if not entries or not target_ids:
            return {}

        vectorizer = TfidfVectorizer(
            min_df=config.MIN_DF,
            max_df=config.MAX_DF,
            ngram_range=tuple(self.settings.ngram_range),
            stop_words='english',
            lowercase=True
        )
        try:
            matrix = vectorizer.fit_transform([entry.standard_answer for entry in entries])
        except ValueError as e:
            # Every answer was empty or stop words only
            logger.warning(f"Could not build key phrase vocabulary: {e}")
            return {}

        vocabulary = vectorizer.get_feature_names_out()
        logger.debug(f"Built TF-IDF vocabulary of {len(vocabulary)} terms over {len(entries)} entries")

        proposals = {}
        for i, entry in enumerate(entries):
            if entry.id not in target_ids:
                continue

            weights = matrix[i].toarray().ravel()
            existing = set(entry.key_phrases)
            picks = []
            for j in np.argsort(-weights, kind="stable"):
                if weights[j] <= 0 or len(picks) >= top_n:
                    break
                term = str(vocabulary[j])
                if term not in existing:
                    picks.append(term)
            proposals[entry.id] = picks

        return proposals
