import base64
import unittest
from unittest.mock import Mock, patch

import requests

from doodletales.common import ExternalServiceError, MalformedResponseError, NarrationError
from doodletales.narration import (
    AnnotationOffsetMap,
    CharacterAlignment,
    ElevenLabsSpeechProvider,
    NarrationEngine,
    VoiceSettings,
    annotate_expressive_text,
    build_word_timings,
)
from doodletales.narration.annotation import choose_marker

from fakes import FakeSpeechProvider, uniform_alignment

SAMPLE = "Hello world. Are you ready?"


class TestExpressiveAnnotation(unittest.TestCase):
    def test_markers_for_first_sentence_and_question(self) -> None:
        annotated = annotate_expressive_text(SAMPLE)

        self.assertEqual(annotated.text, "[warmly] Hello world. [curiously] Are you ready?")
        self.assertEqual(annotated.offset_map.entries, [(0, 9), (13, 21)])

    def test_marker_rules_in_priority_order(self) -> None:
        self.assertEqual(choose_marker("Hooray, we won!", is_first=False), "[laughs happily]")
        self.assertEqual(choose_marker("Look out!", is_first=False), "[excited]")
        self.assertEqual(choose_marker("Where is it?", is_first=False), "[curiously]")
        self.assertEqual(choose_marker("She whispered a secret.", is_first=False), "[softly]")
        self.assertEqual(choose_marker("The cave was dark.", is_first=False), "[nervously]")
        self.assertEqual(choose_marker("He cried all night.", is_first=False), "[gently]")
        self.assertEqual(choose_marker("The sun rose.", is_first=True), "[warmly]")
        self.assertIsNone(choose_marker("The sun rose.", is_first=False))

    def test_keywords_match_whole_words_only(self) -> None:
        for sentence in (
            "Sunny wore a yellow scarf.",
            "The crystal lake sparkled.",
            "He climbed into the saddle.",
            "It was a fun mission.",
            "They ate softballs of dough.",
        ):
            self.assertIsNone(choose_marker(sentence, is_first=False), sentence)

        annotated = annotate_expressive_text("Hello there. Sunny wore a yellow scarf.")
        self.assertEqual(annotated.text, "[warmly] Hello there. Sunny wore a yellow scarf.")

    def test_trailing_fragment_gets_no_marker(self) -> None:
        self.assertEqual(annotate_expressive_text("The end. and then").text, "[warmly] The end. and then")
        self.assertEqual(annotate_expressive_text("Once upon a time").text, "Once upon a time")
        self.assertEqual(
            annotate_expressive_text("The sun rose. Where did it go").text,
            "[warmly] The sun rose. Where did it go",
        )

    def test_round_trip_recovers_clean_characters(self) -> None:
        text = "Once upon a time, a dragon woke. Hooray! Was it real? She whispered softly. The end"
        annotated = annotate_expressive_text(text)

        for index, character in enumerate(text):
            mapped = annotated.offset_map.to_annotated(index)
            self.assertGreaterEqual(mapped, index)
            self.assertEqual(annotated.text[mapped], character)

    def test_text_without_markers_keeps_identity_map(self) -> None:
        annotated = annotate_expressive_text("   ")

        self.assertEqual(annotated.text, "   ")
        self.assertEqual(len(annotated.offset_map), 0)
        self.assertEqual(annotated.offset_map.to_annotated(2), 2)


class TestAnnotationOffsetMap(unittest.TestCase):
    def test_lookup_uses_last_entry_at_or_before_index(self) -> None:
        offsets = AnnotationOffsetMap.from_entries([(0, 9), (13, 21)])

        self.assertEqual(offsets.offset_at(0), 9)
        self.assertEqual(offsets.offset_at(12), 9)
        self.assertEqual(offsets.offset_at(13), 21)
        self.assertEqual(offsets.to_annotated(20), 41)

    def test_index_before_first_marker_is_unshifted(self) -> None:
        self.assertEqual(AnnotationOffsetMap.from_entries([(5, 4)]).offset_at(3), 0)

    def test_invalid_maps_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            AnnotationOffsetMap.from_entries([(5, 4), (5, 8)])
        with self.assertRaises(ValueError):
            AnnotationOffsetMap.from_entries([(1, 8), (5, 4)])
        with self.assertRaises(ValueError):
            AnnotationOffsetMap(positions=(1,), offsets=())


class TestWordTimings(unittest.TestCase):
    def test_scenario_words_and_positions(self) -> None:
        annotated = annotate_expressive_text(SAMPLE)
        alignment = uniform_alignment(annotated.text)

        timings = build_word_timings(SAMPLE, alignment, annotated.offset_map)

        self.assertEqual([timing.word for timing in timings], ["Hello", "world.", "Are", "you", "ready?"])
        self.assertEqual([timing.char_start for timing in timings], [0, 6, 13, 17, 21])
        self.assertAlmostEqual(timings[0].start_time, 9 * 0.05)
        self.assertAlmostEqual(timings[2].start_time, 34 * 0.05)

    def test_timings_are_ordered_and_non_overlapping(self) -> None:
        text = "Wow! The tiny dragon sneaks past. Is anyone there? We miss you."
        annotated = annotate_expressive_text(text)
        timings = build_word_timings(text, uniform_alignment(annotated.text), annotated.offset_map)

        for timing in timings:
            self.assertLessEqual(timing.start_time, timing.end_time)
            self.assertEqual(text[timing.char_start : timing.char_end], timing.word)
        for earlier, later in zip(timings, timings[1:]):
            self.assertLessEqual(earlier.char_end, later.char_start)
            self.assertLessEqual(earlier.start_time, later.start_time)

    def test_short_alignment_is_clamped_and_monotonic(self) -> None:
        alignment = CharacterAlignment(
            characters=tuple("Hi"),
            start_times=(0.5, 0.2),
            end_times=(0.6, 0.3),
        )

        timings = build_word_timings("Hi there friend", alignment, AnnotationOffsetMap())

        self.assertEqual(len(timings), 3)
        self.assertTrue(all(timing.start_time >= 0.5 for timing in timings[1:]))
        self.assertTrue(all(timing.start_time <= timing.end_time for timing in timings))

    def test_empty_alignment_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_word_timings("Hi", CharacterAlignment((), (), ()), AnnotationOffsetMap())

    def test_alignment_from_provider_mapping(self) -> None:
        alignment = CharacterAlignment.from_mapping(
            {
                "characters": ["H", "i"],
                "character_start_times_seconds": [0, 0.1],
                "character_end_times_seconds": [0.1, 0.2],
            }
        )

        self.assertEqual(len(alignment), 2)
        with self.assertRaises(ValueError):
            CharacterAlignment.from_mapping({"characters": ["H"]})
        with self.assertRaises(ValueError):
            CharacterAlignment(("H",), (0.0, 0.1), (0.1,))


class TestNarrationEngine(unittest.TestCase):
    def test_synthesizes_annotated_text_and_maps_timings(self) -> None:
        provider = FakeSpeechProvider()

        result = NarrationEngine(provider).synthesize_with_word_timings(SAMPLE)

        spoken, _ = provider.calls[0]
        self.assertEqual(spoken, "[warmly] Hello world. [curiously] Are you ready?")
        self.assertEqual(result.audio, b"ID3 audio")
        self.assertEqual(result.mime_type, "audio/mpeg")
        self.assertEqual(len(result.word_timings), 5)
        self.assertNotIn("audio", result.to_dict())
        self.assertIn("word: Hello", result.to_yaml())

    def test_provider_failure_raises_narration_error(self) -> None:
        provider = FakeSpeechProvider(error=ExternalServiceError("quota", status=429))

        with self.assertRaises(NarrationError):
            NarrationEngine(provider).synthesize_with_word_timings(SAMPLE)

    def test_empty_text_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            NarrationEngine(FakeSpeechProvider()).synthesize_with_word_timings("  ")


class TestVoiceSettings(unittest.TestCase):
    def test_speed_is_clamped(self) -> None:
        self.assertEqual(VoiceSettings(speed=2.0).speed, 1.2)
        self.assertEqual(VoiceSettings(speed=0.1).speed, 0.7)
        self.assertEqual(VoiceSettings(speed=0.9).speed, 0.9)

    def test_overrides_ignore_none(self) -> None:
        settings = VoiceSettings.from_env(voice_id="abc", speed=None)

        self.assertEqual(settings.voice_id, "abc")
        self.assertEqual(settings.speed, 1.0)


def json_response(payload, status_code=200) -> Mock:
    response = Mock(status_code=status_code, text="")
    response.json.return_value = payload
    if status_code >= 400:
        error = requests.HTTPError(f"{status_code} error")
        error.response = response
        response.raise_for_status.side_effect = error
    return response


class TestElevenLabsSpeechProvider(unittest.TestCase):
    def make_provider(self, session: Mock) -> tuple[ElevenLabsSpeechProvider, list]:
        sleeps: list = []
        provider = ElevenLabsSpeechProvider(
            api_key="key",
            session=session,
            sleep=sleeps.append,
            jitter=lambda low, high: 0.0,
        )
        return provider, sleeps

    def test_synthesize_with_timestamps_decodes_audio_and_alignment(self) -> None:
        session = Mock()
        session.request.return_value = json_response(
            {
                "audio_base64": base64.b64encode(b"mp3").decode("ascii"),
                "alignment": {
                    "characters": ["H", "i"],
                    "character_start_times_seconds": [0.0, 0.1],
                    "character_end_times_seconds": [0.1, 0.2],
                },
            }
        )
        provider, _ = self.make_provider(session)
        voice = VoiceSettings(voice_id="voice-1", speed=0.9)

        synthesis = provider.synthesize_with_timestamps("Hi", voice)

        self.assertEqual(synthesis.audio, b"mp3")
        self.assertEqual(synthesis.alignment.characters, ("H", "i"))
        method, url = session.request.call_args.args
        self.assertEqual(method, "POST")
        self.assertEqual(url, "https://api.elevenlabs.io/v1/text-to-speech/voice-1/with-timestamps")
        kwargs = session.request.call_args.kwargs
        self.assertEqual(kwargs["json"]["text"], "Hi")
        self.assertEqual(kwargs["json"]["voice_settings"]["speed"], 0.9)
        self.assertEqual(kwargs["params"], {"output_format": "mp3_44100_128"})

    def test_missing_alignment_is_malformed(self) -> None:
        session = Mock()
        session.request.return_value = json_response({"audio_base64": "bXAz"})
        provider, _ = self.make_provider(session)

        with self.assertRaises(MalformedResponseError):
            provider.synthesize_with_timestamps("Hi")

    def test_rate_limit_is_retried(self) -> None:
        ok = json_response(
            {
                "audio_base64": "bXAz",
                "alignment": {
                    "characters": ["H"],
                    "character_start_times_seconds": [0.0],
                    "character_end_times_seconds": [0.1],
                },
            }
        )
        session = Mock()
        session.request.side_effect = [json_response({}, status_code=429), ok]
        provider, sleeps = self.make_provider(session)

        provider.synthesize_with_timestamps("H")

        self.assertEqual(session.request.call_count, 2)
        self.assertEqual(sleeps, [2.0])

    def test_plain_synthesis_returns_audio_body(self) -> None:
        session = Mock()
        session.request.return_value = Mock(status_code=200, content=b"ID3 mp3")
        provider, _ = self.make_provider(session)

        audio = provider.synthesize("Good night, little dragon.", VoiceSettings(voice_id="voice-2"))

        self.assertEqual(audio, b"ID3 mp3")
        _, url = session.request.call_args.args
        self.assertTrue(url.endswith("/v1/text-to-speech/voice-2"))
        self.assertEqual(session.request.call_args.kwargs["headers"], {"Accept": "audio/mpeg"})

    def test_list_voices_flags_child_friendly(self) -> None:
        session = Mock()
        session.request.return_value = json_response(
            {
                "voices": [
                    {"voice_id": "1", "name": "Deep Narrator", "category": "premade", "labels": {"age": "old"}},
                    {"voice_id": "2", "name": "Lily", "category": "premade", "labels": {"age": "young"}},
                    {"voice_id": "3", "name": "Custom", "category": "generated"},
                ]
            }
        )
        provider, _ = self.make_provider(session)

        catalog = provider.list_voices()

        self.assertEqual(len(catalog.voices), 3)
        self.assertEqual([voice.voice_id for voice in catalog.child_friendly], ["2", "3"])

    def test_requires_api_key(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            with self.assertRaises(ValueError):
                ElevenLabsSpeechProvider()


if __name__ == "__main__":
    unittest.main()
