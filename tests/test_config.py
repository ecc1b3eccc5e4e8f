from __future__ import annotations

import os
import tempfile
import unittest
from unittest import mock

from phrase_search import RetryPolicy, SearchSettings, VectorMetric


class SearchSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = SearchSettings()

        self.assertEqual(settings.index_name, "phrases")
        self.assertEqual(settings.dimension, 1536)
        self.assertEqual(settings.metric, VectorMetric.COSINE)
        self.assertEqual(settings.top_k, 5)
        self.assertIsNone(settings.timeout)
        self.assertEqual(settings.retry, RetryPolicy())

    def test_metric_aliases_are_normalized(self) -> None:
        self.assertEqual(SearchSettings(metric="l2").metric, VectorMetric.EUCLIDEAN)

    def test_invalid_values_are_rejected(self) -> None:
        for kwargs in (
            {"index_name": "  "},
            {"dimension": 0},
            {"top_k": -1},
            {"timeout": 0},
            {"metric": "hamming"},
        ):
            with self.subTest(**kwargs):
                with self.assertRaises(ValueError):
                    SearchSettings(**kwargs)

    def test_retry_policy_validation_and_backoff(self) -> None:
        policy = RetryPolicy(initial_delay=1.0, multiplier=3.0, max_delay=5.0)

        self.assertEqual(
            [policy.delay_for(attempt) for attempt in (1, 2, 3)], [1.0, 3.0, 5.0]
        )
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(multiplier=0.5)


class SearchSettingsFromEnvTests(unittest.TestCase):
    def test_reads_prefixed_variables(self) -> None:
        settings = SearchSettings.from_env(
            {
                "PHRASE_SEARCH_INDEX": "animals",
                "PHRASE_SEARCH_DIMENSION": "4",
                "PHRASE_SEARCH_METRIC": "dot",
                "PHRASE_SEARCH_TOP_K": "2",
                "PHRASE_SEARCH_TIMEOUT": "1.5",
                "PHRASE_SEARCH_MAX_ATTEMPTS": "5",
                "PHRASE_SEARCH_BACKOFF_INITIAL": "0.1",
                "PHRASE_SEARCH_BACKOFF_MULTIPLIER": "3",
                "PHRASE_SEARCH_BACKOFF_MAX": "2",
            }
        )

        self.assertEqual(settings.index_name, "animals")
        self.assertEqual(settings.dimension, 4)
        self.assertEqual(settings.metric, VectorMetric.DOT)
        self.assertEqual(settings.top_k, 2)
        self.assertEqual(settings.timeout, 1.5)
        self.assertEqual(
            settings.retry,
            RetryPolicy(max_attempts=5, initial_delay=0.1, multiplier=3.0, max_delay=2.0),
        )

    def test_blank_variables_fall_back_to_defaults(self) -> None:
        settings = SearchSettings.from_env({"PHRASE_SEARCH_TOP_K": "  "})

        self.assertEqual(settings, SearchSettings())

    def test_invalid_value_names_the_variable(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            SearchSettings.from_env({"PHRASE_SEARCH_DIMENSION": "wide"})
        self.assertIn("PHRASE_SEARCH_DIMENSION", str(ctx.exception))

        with self.assertRaises(ValueError) as ctx:
            SearchSettings.from_env({"PHRASE_SEARCH_METRIC": "hamming"})
        self.assertIn("PHRASE_SEARCH_METRIC", str(ctx.exception))

    def test_dotenv_file_is_loaded_without_overriding_environment(self) -> None:
        with tempfile.TemporaryDirectory(prefix="phrase_search_env_") as tmp:
            with open(os.path.join(tmp, ".env"), "w", encoding="utf-8") as handle:
                handle.write("PHRASE_SEARCH_INDEX=from_file\nPHRASE_SEARCH_TOP_K=9\n")

            previous = os.getcwd()
            os.chdir(tmp)
            try:
                with mock.patch.dict(os.environ, {"PHRASE_SEARCH_TOP_K": "3"}, clear=True):
                    settings = SearchSettings.from_env()
            finally:
                os.chdir(previous)

        self.assertEqual(settings.index_name, "from_file")
        self.assertEqual(settings.top_k, 3)


if __name__ == "__main__":
    unittest.main()
