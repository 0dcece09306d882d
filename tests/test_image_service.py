import io
import unittest

from PIL import Image

from postmedia.services.image_service import compress_image, compression_settings
from tests.fakes import image_bytes


def _noisy_jpeg(size):
    image = Image.effect_noise(size, 80).convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=98)
    return buffer.getvalue()


class TestCompressionSettings(unittest.TestCase):
    def test_larger_inputs_get_smaller_box_and_lower_quality(self):
        self.assertEqual(compression_settings(100 * 1024), (2048, 85))
        self.assertEqual(compression_settings(600 * 1024), (1920, 80))
        self.assertEqual(compression_settings(3 * 1024 * 1024), (1600, 70))
        self.assertEqual(compression_settings(8 * 1024 * 1024), (1280, 60))

    def test_zero_bytes_uses_mildest_step(self):
        self.assertEqual(compression_settings(0), (2048, 85))


class TestCompressImage(unittest.TestCase):
    def test_resizes_to_fit_bounding_box(self):
        data = _noisy_jpeg((2600, 1300))

        result = compress_image(data, "image/jpeg", "jpg")

        self.assertTrue(result.compressed)
        self.assertEqual(result.mime_type, "image/jpeg")
        with Image.open(io.BytesIO(result.data)) as image:
            self.assertLessEqual(max(image.size), 2048)
            self.assertEqual(image.size[0], image.size[1] * 2)

    def test_webp_is_normalized_to_jpeg_when_smaller(self):
        buffer = io.BytesIO()
        Image.effect_noise((1200, 800), 80).convert("RGB").save(buffer, format="WEBP", lossless=True)
        data = buffer.getvalue()

        result = compress_image(data, "image/webp", "webp")

        self.assertEqual(result.mime_type, "image/jpeg")
        self.assertEqual(result.extension, "jpg")
        with Image.open(io.BytesIO(result.data)) as image:
            self.assertEqual(image.format, "JPEG")
        self.assertLess(len(result.data), len(data))

    def test_webp_that_would_grow_keeps_original_bytes(self):
        data = image_bytes(size=(400, 400), fmt="WEBP")

        result = compress_image(data, "image/webp", "webp")

        self.assertFalse(result.compressed)
        self.assertEqual(result.data, data)
        self.assertEqual(result.mime_type, "image/webp")
        self.assertEqual(result.extension, "webp")

    def test_png_stays_png(self):
        data = image_bytes(size=(2400, 2400), fmt="PNG")

        result = compress_image(data, "image/png", "png")

        self.assertEqual(result.mime_type, "image/png")
        with Image.open(io.BytesIO(result.data)) as image:
            self.assertEqual(image.format, "PNG")
            self.assertEqual(image.size, (2048, 2048))

    def test_gif_is_left_alone(self):
        data = image_bytes(size=(40, 40), fmt="GIF")

        result = compress_image(data, "image/gif", "gif")

        self.assertFalse(result.compressed)
        self.assertEqual(result.data, data)

    def test_animated_webp_is_left_alone(self):
        frames = [Image.new("RGB", (32, 32), color) for color in ("red", "blue")]
        buffer = io.BytesIO()
        frames[0].save(buffer, format="WEBP", save_all=True, append_images=frames[1:])
        data = buffer.getvalue()

        result = compress_image(data, "image/webp", "webp")

        self.assertFalse(result.compressed)
        self.assertEqual(result.mime_type, "image/webp")

    def test_undecodable_bytes_fall_back_to_original(self):
        data = b"definitely not a jpeg"

        with self.assertLogs("postmedia.services.image_service", level="WARNING"):
            result = compress_image(data, "image/jpeg", "jpg")

        self.assertFalse(result.compressed)
        self.assertEqual(result.data, data)
        self.assertEqual(result.mime_type, "image/jpeg")


if __name__ == "__main__":
    unittest.main()
