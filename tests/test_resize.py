import unittest

import numpy as np

from mrcnn_kit.config import MaskRcnnConfig
from mrcnn_kit.errors import ConfigError, DimensionError, UnsupportedModeError
from mrcnn_kit.resize import mold_image, mold_inputs, resize_image


class TestResizeImage(unittest.TestCase):
    def test_none_returns_image_unchanged(self) -> None:
        img = np.arange(5 * 7 * 3, dtype=np.uint8).reshape(5, 7, 3)
        out, window, scale, padding = resize_image(img, 800, 0, 1024, "none")
        self.assertTrue(np.array_equal(out, img))
        self.assertEqual(window, (0.0, 0.0, 5.0, 7.0))
        self.assertEqual(scale, 1.0)
        self.assertEqual(padding, ((0, 0), (0, 0), (0, 0)))

    def test_square_caps_scale_at_max_dim(self) -> None:
        # min_dim asks for 800/400 = 2.0, which would make the long side 1200 > 1024
        img = np.ones((600, 400, 3), dtype=np.float32)
        out, window, scale, padding = resize_image(img, 800, 0, 1024, "square")

        self.assertAlmostEqual(scale, 1024 / 600)
        self.assertAlmostEqual(scale / 2.0, 1024 / 1200)
        self.assertEqual(out.shape, (1024, 1024, 3))

        y1, x1, y2, x2 = window
        self.assertEqual((y2 - y1, x2 - x1), (1024.0, 683.0))
        self.assertEqual(window, (0.0, 170.0, 1024.0, 853.0))
        self.assertEqual(padding, ((0, 0), (170, 171), (0, 0)))

        # Content inside the window, zeros in the padding
        self.assertTrue(np.allclose(out[:, 170:853], 1.0))
        self.assertTrue(np.all(out[:, :170] == 0))
        self.assertTrue(np.all(out[:, 853:] == 0))

    def test_square_scales_up_without_cap(self) -> None:
        img = np.ones((256, 512, 3), dtype=np.float32)
        out, window, scale, _ = resize_image(img, 512, 0, 1024, "square")
        self.assertEqual(scale, 2.0)
        self.assertEqual(out.shape, (1024, 1024, 3))
        self.assertEqual(window, (256.0, 0.0, 768.0, 1024.0))

    def test_square_odd_padding_goes_to_trailing_side(self) -> None:
        img = np.ones((100, 101, 3), dtype=np.float32)
        out, window, scale, padding = resize_image(img, 0, 0, 128, "square")
        self.assertEqual(scale, 1.0)
        self.assertEqual(padding, ((14, 14), (13, 14), (0, 0)))
        self.assertEqual(window, (14.0, 13.0, 114.0, 114.0))
        self.assertEqual(out.shape, (128, 128, 3))

    def test_min_scale_forces_upscale(self) -> None:
        img = np.ones((100, 100, 3), dtype=np.float32)
        out, _, scale, _ = resize_image(img, 0, 1.5, 1024, "square")
        self.assertEqual(scale, 1.5)
        self.assertEqual(out.shape, (1024, 1024, 3))

    def test_pad64_aligned_image_unchanged(self) -> None:
        img = np.random.default_rng(0).random((128, 192, 3)).astype(np.float32)
        out, window, scale, padding = resize_image(img, 0, 0, 1024, "pad64")
        self.assertTrue(np.array_equal(out, img))
        self.assertEqual(window, (0.0, 0.0, 128.0, 192.0))
        self.assertEqual(scale, 1.0)
        self.assertEqual(padding, ((0, 0), (0, 0), (0, 0)))

    def test_pad64_ignores_max_dim(self) -> None:
        img = np.ones((64, 128, 3), dtype=np.float32)
        out, _, scale, _ = resize_image(img, 128, 0, 100, "pad64")
        self.assertEqual(scale, 2.0)
        self.assertEqual(out.shape, (128, 256, 3))

    def test_pad64_strict_rejects_unaligned(self) -> None:
        img = np.ones((100, 150, 3), dtype=np.float32)
        with self.assertRaises(DimensionError):
            resize_image(img, 0, 0, 1024, "pad64")

    def test_pad64_lenient_pads_each_axis(self) -> None:
        img = np.ones((100, 150, 3), dtype=np.float32)
        out, window, _, padding = resize_image(img, 0, 0, 1024, "pad64", strict_pad64=False)
        self.assertEqual(out.shape, (128, 192, 3))
        self.assertEqual(padding, ((14, 14), (21, 21), (0, 0)))
        self.assertEqual(window, (14.0, 21.0, 114.0, 171.0))

    def test_pad64_lenient_width_only(self) -> None:
        # Height already aligned: width is still padded on its own remainder
        img = np.ones((128, 150, 3), dtype=np.float32)
        out, window, _, _ = resize_image(img, 0, 0, 1024, "pad64", strict_pad64=False)
        self.assertEqual(out.shape, (128, 192, 3))
        self.assertEqual(window, (0.0, 21.0, 128.0, 171.0))

    def test_crop_and_unknown_modes_rejected(self) -> None:
        img = np.ones((10, 10, 3), dtype=np.float32)
        with self.assertRaises(UnsupportedModeError):
            resize_image(img, 0, 0, 64, "crop")
        with self.assertRaises(UnsupportedModeError):
            resize_image(img, 0, 0, 64, "stretch")

    def test_grayscale_keeps_channel_axis(self) -> None:
        img = np.ones((50, 40), dtype=np.float32)
        out, _, _, _ = resize_image(img, 80, 0, 128, "square")
        self.assertEqual(out.shape, (128, 128, 1))

    def test_int64_image_is_resized_as_float(self) -> None:
        img = np.arange(60 * 40 * 3, dtype=np.int64).reshape(60, 40, 3)

        out, window, scale, _ = resize_image(img, 80, 0, 128, "square")
        expected, _, _, _ = resize_image(img.astype(np.float32), 80, 0, 128, "square")
        self.assertEqual(out.shape, (128, 128, 3))
        self.assertEqual(out.dtype, np.float32)
        self.assertEqual(window, (4.0, 24.0, 124.0, 104.0))
        self.assertEqual(scale, 2.0)
        self.assertTrue(np.array_equal(out, expected))

    def test_bool_and_float16_images_resize(self) -> None:
        for img in (np.ones((50, 40), dtype=bool), np.ones((50, 40), dtype=np.float16)):
            with self.subTest(dtype=img.dtype):
                out, _, _, _ = resize_image(img, 80, 0, 128, "square")
                self.assertEqual(out.shape, (128, 128, 1))
                self.assertEqual(float(out.max()), 1.0)

    def test_non_numeric_image_rejected(self) -> None:
        img = np.full((50, 40, 3), "x", dtype=object)
        with self.assertRaises(TypeError):
            resize_image(img, 80, 0, 128, "square")


class TestMoldImage(unittest.TestCase):
    def test_subtracts_mean_per_channel(self) -> None:
        img = np.ones((4, 4, 3), dtype=np.uint8)
        out = mold_image(img, (1.0, 2.0, 3.0))
        self.assertEqual(out.dtype, np.float32)
        self.assertTrue(np.allclose(out[0, 0], [0.0, -1.0, -2.0]))
        self.assertEqual(int(img[0, 0, 0]), 1)

    def test_missing_or_short_mean_is_config_error(self) -> None:
        img = np.ones((4, 4, 3), dtype=np.float32)
        with self.assertRaises(ConfigError):
            mold_image(img, ())
        with self.assertRaises(ConfigError):
            mold_image(img, None)
        with self.assertRaises(ConfigError):
            mold_image(img, (1.0, 2.0))


class TestMoldInputs(unittest.TestCase):
    def test_records_shapes_window_and_scale(self) -> None:
        cfg = MaskRcnnConfig(image_min_dim=64, image_max_dim=128, mean_pixel=(10.0, 10.0, 10.0))
        img = np.full((60, 40, 3), 10, dtype=np.uint8)
        prep = mold_inputs(img, cfg)

        self.assertEqual(prep.original_shape, (60.0, 40.0, 3.0))
        self.assertEqual(prep.processing_shape, (128.0, 128.0, 3.0))
        self.assertAlmostEqual(prep.scale, 1.6)
        self.assertEqual(prep.window, (16.0, 32.0, 112.0, 96.0))
        # Content becomes 0, padding becomes -mean
        self.assertTrue(np.allclose(prep.image[16:112, 32:96], 0.0))
        self.assertTrue(np.allclose(prep.image[0, 0], -10.0))

    def test_mean_checked_before_resizing(self) -> None:
        cfg = MaskRcnnConfig(mean_pixel=(1.0,))
        with self.assertRaises(ConfigError):
            mold_inputs(np.ones((10, 10, 3), dtype=np.float32), cfg)


if __name__ == "__main__":
    unittest.main()
