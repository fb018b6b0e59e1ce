import unittest
from typing import Sequence, Tuple

import numpy as np

from sight_kit.decoder import TensorDecoder
from sight_kit.errors import EmptyLabelTable, OutOfRange
from sight_kit.filtering import CandidateFilter, ClassThresholds, FilterConfig, zone_for_center
from sight_kit.types import Zone


Slot = Tuple[float, float, float, float, Sequence[float]]


def _decoder(slots: Sequence[Slot]) -> TensorDecoder:
    num_classes = len(slots[0][4])
    t = np.zeros((4 + num_classes, len(slots)), dtype=np.float32)
    for i, (cx, cy, w, h, scores) in enumerate(slots):
        t[0:4, i] = [cx, cy, w, h]
        t[4:, i] = scores
    return TensorDecoder(t.reshape(-1), num_slots=len(slots), num_classes=num_classes)


class TestCandidateFilter(unittest.TestCase):
    def test_argmax_ties_resolve_to_lowest_index(self) -> None:
        dec = _decoder([(320, 320, 40, 40, [0.1, 0.6, 0.6]), (100, 100, 40, 40, [0.5, 0.5, 0.2])])
        flt = CandidateFilter(["bottle", "person", "door"], cfg=FilterConfig(input_size=640))
        dets = flt.filter(dec, (640, 640))
        self.assertEqual([d.class_id for d in dets], [1, 0])
        self.assertEqual([d.class_name for d in dets], ["person", "bottle"])

    def test_chair_uses_stricter_threshold(self) -> None:
        labels = ["person", "Chair"]
        flt = CandidateFilter(labels, cfg=FilterConfig(input_size=640))

        low = flt.filter(_decoder([(320, 320, 40, 40, [0.0, 0.30])]), (640, 640))
        self.assertEqual(low, [])

        high = flt.filter(_decoder([(320, 320, 40, 40, [0.0, 0.40])]), (640, 640))
        self.assertEqual(len(high), 1)
        self.assertEqual(high[0].class_name, "Chair")
        self.assertAlmostEqual(high[0].confidence, 0.40, places=6)

        # The same 0.30 score clears the default bar for any other class.
        other = flt.filter(_decoder([(320, 320, 40, 40, [0.30, 0.0])]), (640, 640))
        self.assertEqual([d.class_name for d in other], ["person"])

    def test_default_threshold_filters_weak_scores(self) -> None:
        flt = CandidateFilter(["person"], cfg=FilterConfig(input_size=640))
        dets = flt.filter(_decoder([(320, 320, 40, 40, [0.10]), (100, 100, 40, 40, [0.2])]), (640, 640))
        self.assertEqual(len(dets), 1)
        self.assertAlmostEqual(dets[0].confidence, 0.2, places=6)

    def test_score_equal_to_threshold_rejected(self) -> None:
        flt = CandidateFilter(["person", "Chair"], cfg=FilterConfig(input_size=640))
        at_default = flt.filter(_decoder([(320, 320, 40, 40, [0.15, 0.0])]), (640, 640))
        self.assertEqual(at_default, [])
        at_chair = flt.filter(_decoder([(320, 320, 40, 40, [0.0, 0.35])]), (640, 640))
        self.assertEqual(at_chair, [])

        above = flt.filter(_decoder([(320, 320, 40, 40, [0.1501, 0.3501])]), (640, 640))
        self.assertEqual([d.class_name for d in above], ["Chair"])

    def test_thresholds_lookup(self) -> None:
        th = ClassThresholds()
        self.assertEqual(th.for_class("Chair"), 0.35)
        self.assertEqual(th.for_class("chair"), 0.35)
        self.assertEqual(th.for_class("table"), 0.15)
        custom = ClassThresholds(default=0.2, overrides={"stairs": 0.5})
        self.assertEqual(custom.for_class("Stairs"), 0.5)
        self.assertEqual(custom.for_class("Chair"), 0.2)
        with self.assertRaises(ValueError):
            ClassThresholds(default=1.5)

    def test_independent_scale_factors(self) -> None:
        flt = CandidateFilter(["person"], cfg=FilterConfig(input_size=640))
        dets = flt.filter(_decoder([(320, 320, 64, 64, [0.9])]), (1280, 720))
        self.assertEqual(len(dets), 1)
        d = dets[0]
        self.assertAlmostEqual(d.x1, 576.0)
        self.assertAlmostEqual(d.x2, 704.0)
        self.assertAlmostEqual(d.y1, 324.0)
        self.assertAlmostEqual(d.y2, 396.0)
        self.assertEqual(d.zone, Zone.FRONT)
        self.assertEqual(d.raw_center, (320.0, 320.0))
        self.assertEqual(d.raw_size, (64.0, 64.0))

    def test_normalized_coordinates(self) -> None:
        flt = CandidateFilter(["person"], cfg=FilterConfig(input_size=640, normalized_coords=True))
        dets = flt.filter(_decoder([(0.5, 0.5, 0.25, 0.5, [0.9])]), (1000, 500))
        d = dets[0]
        self.assertAlmostEqual(d.x1, 375.0)
        self.assertAlmostEqual(d.x2, 625.0)
        self.assertAlmostEqual(d.y1, 125.0)
        self.assertAlmostEqual(d.y2, 375.0)

    def test_boxes_clamped_to_image(self) -> None:
        flt = CandidateFilter(["person"], cfg=FilterConfig(input_size=640))
        dets = flt.filter(
            _decoder([(10, 10, 40, 40, [0.9]), (630, 630, 40, 40, [0.8])]),
            (640, 640),
        )
        self.assertEqual(len(dets), 2)
        left, right = dets
        self.assertEqual((left.x1, left.y1), (0.0, 0.0))
        self.assertAlmostEqual(left.x2, 30.0)
        self.assertEqual((right.x2, right.y2), (640.0, 640.0))
        self.assertAlmostEqual(right.x1, 610.0)
        self.assertEqual(left.zone, Zone.LEFT)
        self.assertEqual(right.zone, Zone.RIGHT)

    def test_degenerate_boxes_dropped(self) -> None:
        flt = CandidateFilter(["person"], cfg=FilterConfig(input_size=640))
        dets = flt.filter(
            _decoder(
                [
                    (320, 320, 0, 40, [0.9]),  # zero width
                    (-100, 320, 20, 20, [0.9]),  # fully outside on the left
                    (320, 320, -10, 40, [0.9]),  # negative width
                    (320, 320, 40, 40, [0.9]),
                ]
            ),
            (640, 640),
        )
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].raw_center, (320.0, 320.0))

    def test_zone_boundaries(self) -> None:
        self.assertEqual(zone_for_center(100.0, 300), Zone.LEFT)
        self.assertEqual(zone_for_center(99.0, 300), Zone.LEFT)
        self.assertEqual(zone_for_center(150.0, 300), Zone.FRONT)
        self.assertEqual(zone_for_center(200.0, 300), Zone.FRONT)
        self.assertEqual(zone_for_center(201.0, 300), Zone.RIGHT)

    def test_zone_from_filtered_boxes(self) -> None:
        flt = CandidateFilter(["person"], cfg=FilterConfig(input_size=300))
        dets = flt.filter(
            _decoder(
                [
                    (100, 150, 20, 20, [0.9]),
                    (150, 150, 20, 20, [0.8]),
                    (200, 150, 20, 20, [0.7]),
                    (250, 150, 20, 20, [0.6]),
                ]
            ),
            (300, 300),
        )
        self.assertEqual([d.zone for d in dets], [Zone.LEFT, Zone.FRONT, Zone.FRONT, Zone.RIGHT])

    def test_empty_label_table_raises(self) -> None:
        flt = CandidateFilter([], cfg=FilterConfig(input_size=640))
        with self.assertRaises(EmptyLabelTable):
            flt.filter(_decoder([(320, 320, 40, 40, [0.9])]), (640, 640))

    def test_more_labels_than_model_classes_is_out_of_range(self) -> None:
        flt = CandidateFilter(["a", "b", "c"], cfg=FilterConfig(input_size=640))
        with self.assertRaises(OutOfRange):
            flt.filter(_decoder([(320, 320, 40, 40, [0.9, 0.1])]), (640, 640))

    def test_random_tensor_invariants(self) -> None:
        rng = np.random.default_rng(7)
        n, c = 400, 6
        labels = ["person", "Chair", "table", "door", "stairs", "bag"]
        t = np.empty((4 + c, n), dtype=np.float32)
        t[0:2] = rng.uniform(-50, 690, size=(2, n))
        t[2:4] = rng.uniform(0, 200, size=(2, n))
        t[4:] = rng.uniform(0, 1, size=(c, n))
        dec = TensorDecoder(t.reshape(-1), num_slots=n, num_classes=c)
        thresholds = ClassThresholds()
        width, height = 1280, 720
        dets = CandidateFilter(labels, thresholds, FilterConfig(input_size=640)).filter(dec, (width, height))

        self.assertGreater(len(dets), 0)
        for d in dets:
            self.assertTrue(0.0 <= d.x1 <= d.x2 <= width)
            self.assertTrue(0.0 <= d.y1 <= d.y2 <= height)
            self.assertGreater(d.confidence, thresholds.for_class(d.class_name))
            self.assertLessEqual(d.confidence, 1.0)
            self.assertEqual(labels[d.class_id], d.class_name)

        # Chosen class is the argmax of the slot's scores.
        by_center = {d.raw_center: d for d in dets}
        for i in range(n):
            key = (float(t[0, i]), float(t[1, i]))
            if key in by_center:
                self.assertEqual(by_center[key].class_id, int(np.argmax(t[4:, i])))


if __name__ == "__main__":
    unittest.main()
