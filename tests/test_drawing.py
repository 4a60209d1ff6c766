import unittest

from doodletales.ai_generation import InlineImage
from doodletales.common import DrawingParseError, ExternalServiceError
from doodletales.story_generation import DEFAULT_CHARACTER, Character, DrawingDescription, DrawingParser

from fakes import FakeGateway

DRAWING = InlineImage(mime_type="image/png", data=b"drawing")


class TestDrawingDescription(unittest.TestCase):
    def test_from_mapping_accepts_camel_case(self) -> None:
        drawing = DrawingDescription.from_mapping(
            {
                "characters": [
                    {"name": "the blue cat", "gender": "Girl", "appearance": "blue fur"},
                    "a tiny bird",
                ],
                "setting": "a garden",
                "objects": "ball, kite",
                "colors": ["blue", "green"],
                "artStyle": "crayon",
                "childDescription": "my cat",
            }
        )

        self.assertEqual(
            drawing.characters,
            (
                Character(name="the blue cat", appearance="blue fur", gender="girl"),
                Character(name="a tiny bird"),
            ),
        )
        self.assertEqual(drawing.objects, ("ball", "kite"))
        self.assertEqual(drawing.art_style, "crayon")
        self.assertEqual(drawing.child_description, "my cat")

    def test_characters_are_never_empty(self) -> None:
        self.assertEqual(DrawingDescription.from_mapping({"characters": []}).characters, (DEFAULT_CHARACTER,))
        self.assertEqual(DrawingDescription.from_mapping({}).characters, (DEFAULT_CHARACTER,))
        self.assertEqual(DrawingDescription(characters=()).characters, (DEFAULT_CHARACTER,))

    def test_unknown_gender_is_dropped(self) -> None:
        character = Character.from_value({"name": "Blob", "gender": "unknown"})

        self.assertIsNone(character.gender)

    def test_non_mapping_is_rejected(self) -> None:
        with self.assertRaises(TypeError):
            DrawingDescription.from_mapping(["not", "a", "mapping"])

    def test_as_dict_uses_camel_case_keys(self) -> None:
        data = DrawingDescription(art_style="marker", child_description="hi").as_dict()

        self.assertEqual(data["artStyle"], "marker")
        self.assertEqual(data["childDescription"], "hi")
        self.assertEqual(data["characters"][0]["name"], DEFAULT_CHARACTER.name)


class TestDrawingParser(unittest.TestCase):
    def test_parse_returns_description_and_fills_hint(self) -> None:
        gateway = FakeGateway(
            vision_response='```json\n{"characters": [{"name": "Ember"}], "setting": "a cave"}\n```'
        )

        drawing = DrawingParser(gateway).parse(DRAWING, "my dragon")

        self.assertEqual(drawing.characters[0].name, "Ember")
        self.assertEqual(drawing.setting, "a cave")
        self.assertEqual(drawing.child_description, "my dragon")
        image, prompt = gateway.vision_calls[0]
        self.assertIs(image, DRAWING)
        self.assertIn('"my dragon"', prompt)

    def test_parse_with_no_characters_uses_default(self) -> None:
        gateway = FakeGateway(vision_response='{"characters": [], "setting": "space"}')

        drawing = DrawingParser(gateway).parse(DRAWING)

        self.assertEqual(drawing.characters, (DEFAULT_CHARACTER,))

    def test_malformed_json_raises_parse_error(self) -> None:
        gateway = FakeGateway(vision_response="I see a lovely dragon!")

        with self.assertRaises(DrawingParseError):
            DrawingParser(gateway).parse(DRAWING)

    def test_provider_failure_raises_parse_error(self) -> None:
        gateway = FakeGateway(vision_response=ExternalServiceError("down", status=500))

        with self.assertRaises(DrawingParseError) as ctx:
            DrawingParser(gateway).parse(DRAWING)
        self.assertIsInstance(ctx.exception.__cause__, ExternalServiceError)

    def test_describe_returns_text(self) -> None:
        gateway = FakeGateway(vision_response="A happy red dragon in a cave.")

        self.assertEqual(DrawingParser(gateway).describe(DRAWING), "A happy red dragon in a cave.")


if __name__ == "__main__":
    unittest.main()
