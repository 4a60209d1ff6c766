import json
import unittest

from doodletales.common import ExternalServiceError, StoryGenerationError
from doodletales.story_generation import (
    PageTextWriter,
    SceneExpander,
    TitleHeuristics,
    TitleSummaryGenerator,
    Translator,
    normalize_language,
    truncate_at_word_boundary,
)
from doodletales.story_generation.languages import generic_title
from doodletales.story_generation.title import is_acceptable_title

from fakes import PAGE_PROMPT, SCENE_PROMPT, TITLE_PROMPT, FakeGateway

FIRST_PAGE = "A little dragon named Ember lived in a cave by the sea."


class TestLanguages(unittest.TestCase):
    def test_aliases_are_normalized(self) -> None:
        self.assertEqual(normalize_language("ES"), "spanish")
        self.assertEqual(normalize_language(" Français "), "french")
        self.assertEqual(normalize_language(None), "english")

    def test_unsupported_language_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            normalize_language("klingon")
        with self.assertRaises(ValueError):
            normalize_language("", default=None)

    def test_generic_titles_are_localized(self) -> None:
        self.assertEqual(generic_title("french"), "Mon histoire magique")
        self.assertEqual(generic_title("unknown"), "My Magical Story")


class TestPageTextWriter(unittest.TestCase):
    def test_pages_are_capped(self) -> None:
        pages = [f"Page {number}." for number in range(1, 14)]
        gateway = FakeGateway({PAGE_PROMPT: json.dumps(pages)})

        result = PageTextWriter(gateway, max_pages=10).write_pages("a dragon", "english")

        self.assertEqual(result, pages[:10])

    def test_malformed_pages_raise_story_error(self) -> None:
        gateway = FakeGateway({PAGE_PROMPT: "Once upon a time there was a dragon."})

        with self.assertRaises(StoryGenerationError):
            PageTextWriter(gateway).write_pages("a dragon", "english")

    def test_provider_failure_raises_story_error(self) -> None:
        gateway = FakeGateway({PAGE_PROMPT: ExternalServiceError("quota", status=429, retryable=True)})

        with self.assertRaises(StoryGenerationError):
            PageTextWriter(gateway).write_pages("a dragon", "english")

    def test_invalid_max_pages(self) -> None:
        with self.assertRaises(ValueError):
            PageTextWriter(FakeGateway(), max_pages=0)


class TestSceneExpander(unittest.TestCase):
    def test_expansion_collapses_whitespace(self) -> None:
        gateway = FakeGateway({SCENE_PROMPT: "Ember  soars\nover hills.\n\nThe sun sets."})

        scene = SceneExpander(gateway).expand("Ember flies.", page_index=1, total_pages=3)

        self.assertEqual(scene, "Ember soars over hills. The sun sets.")
        prompt, options = gateway.text_calls[0]
        self.assertIn('"Ember flies."', prompt)
        self.assertEqual(options["temperature"], 0.7)

    def test_provider_errors_propagate(self) -> None:
        gateway = FakeGateway({SCENE_PROMPT: ExternalServiceError("down")})

        with self.assertRaises(ExternalServiceError):
            SceneExpander(gateway).expand("Ember flies.")


class TestTitleHeuristics(unittest.TestCase):
    def test_short_creative_title_is_accepted(self) -> None:
        self.assertTrue(is_acceptable_title("Ember's Pancake Quest", FIRST_PAGE))

    def test_long_or_wordy_titles_are_rejected(self) -> None:
        self.assertFalse(is_acceptable_title("x" * 61, FIRST_PAGE))
        self.assertFalse(is_acceptable_title("one two three four five six seven eight nine", FIRST_PAGE))
        self.assertFalse(is_acceptable_title("   ", FIRST_PAGE))

    def test_restated_opening_is_rejected(self) -> None:
        self.assertFalse(is_acceptable_title("A little dragon named Ember lived", FIRST_PAGE))

    def test_short_prefix_of_opening_survives(self) -> None:
        self.assertTrue(is_acceptable_title("A Little Dragon", FIRST_PAGE))

    def test_thresholds_are_configurable(self) -> None:
        strict = TitleHeuristics(max_title_words=2)

        self.assertFalse(is_acceptable_title("Ember's Pancake Quest", FIRST_PAGE, strict))

    def test_truncate_at_word_boundary(self) -> None:
        text = "Ember the dragon learns that sharing pancakes makes every breakfast better."

        truncated = truncate_at_word_boundary(text, 30)

        self.assertLessEqual(len(truncated), 30)
        self.assertTrue(truncated.endswith("…"))
        self.assertTrue(text.startswith(truncated[:-1]))
        self.assertEqual(truncate_at_word_boundary("  Short   text ", 30), "Short text")


class TestTitleSummaryGenerator(unittest.TestCase):
    def test_generated_title_and_summary_are_used(self) -> None:
        gateway = FakeGateway(
            {TITLE_PROMPT: '{"title": "Ember\'s Pancake Quest", "summary": "A dragon shares."}'}
        )

        result = TitleSummaryGenerator(gateway).generate(
            FIRST_PAGE, first_page=FIRST_PAGE, language="english"
        )

        self.assertEqual(result.title, "Ember's Pancake Quest")
        self.assertEqual(result.summary, "A dragon shares.")
        self.assertTrue(result.generated_title)

    def test_sentence_like_title_falls_back_to_generic(self) -> None:
        gateway = FakeGateway(
            {TITLE_PROMPT: json.dumps({"title": "A little dragon named Ember lived", "summary": "ok"})}
        )

        result = TitleSummaryGenerator(gateway).generate(
            FIRST_PAGE, first_page=FIRST_PAGE, language="spanish"
        )

        self.assertEqual(result.title, "Mi historia mágica")
        self.assertFalse(result.generated_title)

    def test_provider_failure_degrades_to_fallbacks(self) -> None:
        full_text = " ".join([FIRST_PAGE] * 5)
        gateway = FakeGateway({TITLE_PROMPT: ExternalServiceError("down")})

        result = TitleSummaryGenerator(gateway).generate(
            full_text, first_page=FIRST_PAGE, language="english"
        )

        self.assertEqual(result.title, "My Magical Story")
        self.assertLessEqual(len(result.summary), 120)
        self.assertTrue(result.summary.endswith("…"))
        self.assertFalse(result.generated_summary)


class TestTranslator(unittest.TestCase):
    def test_translate_calls_gateway(self) -> None:
        gateway = FakeGateway({"Translate the following text": "Había una vez un dragón."})

        result = Translator(gateway).translate("Once upon a time a dragon.", "es", "english")

        self.assertEqual(result, "Había una vez un dragón.")
        self.assertIn("into Spanish", gateway.text_calls[0][0])

    def test_same_language_is_returned_unchanged(self) -> None:
        gateway = FakeGateway()

        self.assertEqual(Translator(gateway).translate("Hello", "english", "en"), "Hello")
        self.assertEqual(gateway.text_calls, [])

    def test_empty_text_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Translator(FakeGateway()).translate("  ", "french")


if __name__ == "__main__":
    unittest.main()
