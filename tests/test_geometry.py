import unittest

import numpy as np

from mrcnn_kit.errors import DimensionError
from mrcnn_kit.geometry import denorm_boxes, norm_boxes, round_half_away, window_relative


class TestRoundHalfAway(unittest.TestCase):
    def test_halves_go_away_from_zero(self) -> None:
        out = round_half_away([2.5, -2.5, 0.49, 1.5, -0.4])
        self.assertTrue(np.array_equal(out, np.array([3.0, -3.0, 0.0, 2.0, -0.0])))


class TestNormBoxes(unittest.TestCase):
    def test_full_image_box_is_unit_box(self) -> None:
        out = norm_boxes([0, 0, 300, 400], (300, 400, 3))
        self.assertTrue(np.allclose(out, [0.0, 0.0, 1.0, 1.0]))

    def test_roundtrip_pixel_boxes(self) -> None:
        boxes = np.array(
            [
                [10, 20, 110, 220],
                [0, 0, 50, 60],
                [299, 399, 300, 400],
            ]
        )
        shape = (300, 400)
        back = denorm_boxes(norm_boxes(boxes, shape), shape)
        self.assertEqual(back.dtype, np.int32)
        self.assertTrue(np.array_equal(back, boxes))

    def test_denorm_rounds_to_nearest_pixel(self) -> None:
        # 0.1 * 999 = 99.9 -> 100, 0.6 * 999 + 1 = 600.4 -> 600
        out = denorm_boxes([0.1, 0.2, 0.6, 0.7], (1000, 800))
        self.assertEqual(out.tolist(), [100, 160, 600, 560])

    def test_values_are_not_clamped(self) -> None:
        out = norm_boxes([-10, -10, 310, 410], (300, 400))
        self.assertLess(out[0], 0.0)
        self.assertGreater(out[2], 1.0)

    def test_double_normalization_diverges(self) -> None:
        box = np.array([30.0, 40.0, 150.0, 200.0])
        shape = (300, 400)
        once = norm_boxes(box, shape)
        twice = norm_boxes(once, shape)
        self.assertFalse(np.allclose(once, twice))
        self.assertFalse(np.allclose(denorm_boxes(twice, shape), box))

    def test_degenerate_shape_rejected(self) -> None:
        with self.assertRaises(DimensionError):
            norm_boxes([0, 0, 1, 1], (1, 400))
        with self.assertRaises(DimensionError):
            denorm_boxes([0, 0, 1, 1], (300,))


class TestWindowRelative(unittest.TestCase):
    def test_unit_window_is_identity(self) -> None:
        boxes = np.array([[0.1, 0.2, 0.6, 0.7], [0.0, 0.0, 1.0, 1.0]])
        self.assertTrue(np.allclose(window_relative(boxes, (0.0, 0.0, 1.0, 1.0)), boxes))

    def test_window_maps_to_unit_box(self) -> None:
        window = (0.25, 0.1, 0.75, 0.9)
        self.assertTrue(np.allclose(window_relative(window, window), [0.0, 0.0, 1.0, 1.0]))

    def test_empty_window_rejected(self) -> None:
        with self.assertRaises(DimensionError):
            window_relative([0.1, 0.1, 0.2, 0.2], (0.5, 0.0, 0.5, 1.0))


if __name__ == "__main__":
    unittest.main()
