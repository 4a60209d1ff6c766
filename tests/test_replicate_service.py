import os
import unittest
from unittest.mock import Mock, patch

from doodletales.ai_generation import InlineImage, ReplicateImageGenerator
from doodletales.ai_generation.replicate_service import normalize_image_outputs
from doodletales.common import MalformedResponseError


class FakeFileOutput:
    def __init__(self, data: bytes, url: str) -> None:
        self._data = data
        self.url = url

    def read(self) -> bytes:
        return self._data


class TestReplicateImageGenerator(unittest.TestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_requires_token_or_client(self) -> None:
        with self.assertRaises(ValueError):
            ReplicateImageGenerator(api_token="")

    def test_file_output_is_read_into_generated_image(self) -> None:
        client = Mock()
        client.run.return_value = [FakeFileOutput(b"jpeg-bytes", "https://replicate.delivery/out.jpg")]
        generator = ReplicateImageGenerator(client=client)

        image = generator.generate_image("  a dragon eating pancakes  ")

        self.assertEqual(image.data, b"jpeg-bytes")
        self.assertEqual(image.mime_type, "image/jpeg")
        model, = client.run.call_args.args
        self.assertEqual(model, "black-forest-labs/flux-schnell")
        payload = client.run.call_args.kwargs["input"]
        self.assertEqual(payload["prompt"], "a dragon eating pancakes")
        self.assertEqual(payload["aspect_ratio"], "4:3")

    def test_url_output_is_downloaded(self) -> None:
        response = Mock(content=b"png-bytes", headers={"Content-Type": "image/png; charset=binary"})
        session = Mock()
        session.get.return_value = response
        client = Mock()
        client.run.return_value = "https://replicate.delivery/out.png"
        generator = ReplicateImageGenerator(client=client, session=session, timeout=5)

        image = generator.generate_image("a castle")

        session.get.assert_called_once_with("https://replicate.delivery/out.png", timeout=5)
        response.raise_for_status.assert_called_once_with()
        self.assertEqual(image.data, b"png-bytes")
        self.assertEqual(image.mime_type, "image/png")

    def test_reference_image_goes_to_model_specific_input(self) -> None:
        client = Mock()
        client.run.return_value = [b"bytes"]
        generator = ReplicateImageGenerator(
            client=client,
            model_identifier="black-forest-labs/flux-kontext-pro",
        )

        generator.generate_image("a castle", reference_image=InlineImage("image/png", b"ref"))

        payload = client.run.call_args.kwargs["input"]
        self.assertEqual(payload["input_image"], "data:image/png;base64,cmVm")

    def test_schnell_rejects_reference_image(self) -> None:
        generator = ReplicateImageGenerator(client=Mock())

        with self.assertRaises(ValueError):
            generator.generate_image("a castle", reference_image=InlineImage("image/png", b"ref"))

    def test_empty_outputs_are_malformed(self) -> None:
        client = Mock()
        client.run.return_value = []
        generator = ReplicateImageGenerator(client=client)

        with self.assertRaises(MalformedResponseError):
            generator.generate_image("a castle")

    def test_normalize_image_outputs_joins_streamed_characters(self) -> None:
        self.assertEqual(normalize_image_outputs(list("https://x/y.png")), ["https://x/y.png"])
        self.assertEqual(normalize_image_outputs(None), [])
        self.assertEqual(normalize_image_outputs([["a.png"], "b.png"]), ["a.png", "b.png"])


if __name__ == "__main__":
    unittest.main()
