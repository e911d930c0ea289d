"""Tests for the slideshow filter graph compiler and serializer."""

from __future__ import annotations

import unittest

from slidefade.config import TimingLimits
from slidefade.errors import InvalidDuration, InvalidInputCount
from slidefade.graph.compiler import (
    SINK_LABEL,
    compile_slideshow,
    crossfade_offsets,
    slide_duration,
    slide_timings,
)
from slidefade.graph.serialize import format_number, format_offset, map_label, serialize_graph, serialize_node
from slidefade.types import CanvasDimensions, FilterKind

SCENARIO_A_SIZES = [(100, 200), (300, 100), (200, 200)]
CANVAS = CanvasDimensions(width=300, height=200)


class SlideTimingTest(unittest.TestCase):
    """Per-slide durations, frame counts, and loop counts."""

    def test_scenario_a_timings(self) -> None:
        timings = slide_timings(3, 1.5, 0.5, 30)
        self.assertEqual([t.duration for t in timings], [1.75, 2.0, 1.75])
        self.assertEqual([t.frame_count for t in timings], [53, 60, 53])
        self.assertEqual([t.loop_count for t in timings], [52, 59, 52])

    def test_edge_slides_get_half_transition(self) -> None:
        for total in range(2, 21):
            for display, transition in ((0.5, 0.1), (1.5, 0.5), (10.0, 3.0), (2.5, 1.3)):
                durations = [slide_duration(i, total, display, transition) for i in range(total)]
                self.assertAlmostEqual(durations[0], display + transition / 2)
                self.assertAlmostEqual(durations[-1], display + transition / 2)
                for interior in durations[1:-1]:
                    self.assertAlmostEqual(interior, display + transition)

    def test_float_noise_does_not_add_a_frame(self) -> None:
        # 1.1 + 0.3 is 1.4000000000000001 in binary floating point.
        timings = slide_timings(3, 1.1, 0.3, 30)
        self.assertEqual(timings[1].frame_count, 42)
        self.assertEqual(timings[1].loop_count, 41)

    def test_loop_count_never_negative(self) -> None:
        timings = slide_timings(2, 0.01, 0.0, 1)
        for timing in timings:
            self.assertGreaterEqual(timing.frame_count, 1)
            self.assertEqual(timing.loop_count, timing.frame_count - 1)

    def test_offsets_are_linear_in_display_duration(self) -> None:
        offsets = crossfade_offsets(6, 1.5)
        self.assertEqual(offsets, [1.5, 3.0, 4.5, 6.0, 7.5])
        self.assertEqual(offsets, sorted(set(offsets)))


class CompileSlideshowTest(unittest.TestCase):
    """Graph topology, labels, and validation."""

    def test_scenario_a_graph(self) -> None:
        graph = compile_slideshow(SCENARIO_A_SIZES, 1.5, 0.5, 30, CANVAS)

        self.assertEqual([node.output for node in graph.transform_nodes], ["v0", "v1", "v2"])
        crossfades = graph.crossfade_nodes
        self.assertEqual(len(crossfades), 2)
        self.assertEqual(crossfades[0].inputs, ("v0", "v1"))
        self.assertEqual(crossfades[1].inputs, (crossfades[0].output, "v2"))
        self.assertEqual(graph.sink, crossfades[1].output)
        self.assertEqual(graph.sink, SINK_LABEL)

        offsets = [dict(node.steps[0].params)["offset"] for node in crossfades]
        self.assertEqual(offsets, ["1.50", "3.00"])

    def test_scenario_a_text(self) -> None:
        graph = compile_slideshow(SCENARIO_A_SIZES, 1.5, 0.5, 30, CANVAS)
        text = serialize_graph(graph)

        statements = text.split(";")
        self.assertEqual(len(statements), 5)
        self.assertEqual(
            statements[0],
            "[0:v]scale=300:200:force_original_aspect_ratio=decrease,"
            "pad=300:200:(ow-iw)/2:(oh-ih)/2:black,setsar=1,fps=30,format=yuva420p,"
            "loop=loop=52:size=1:start=0,trim=duration=1.75,setpts=PTS-STARTPTS[v0]",
        )
        self.assertIn("loop=loop=59:size=1:start=0,trim=duration=2,", statements[1])
        self.assertEqual(statements[3], "[v0][v1]xfade=transition=fade:duration=0.5:offset=1.50[vout1]")
        self.assertEqual(statements[4], "[vout1][v2]xfade=transition=fade:duration=0.5:offset=3.00[vfinal]")
        self.assertNotIn(" ", text)
        self.assertEqual(map_label(graph), "[vfinal]")

    def test_node_counts_across_bounds(self) -> None:
        for count in range(2, 21):
            for display, transition in ((0.5, 0.1), (10.0, 3.0), (3.5, 1.2)):
                graph = compile_slideshow([(64, 48)] * count, display, transition, 30, CanvasDimensions(64, 48))
                self.assertEqual(len(graph.transform_nodes), count)
                self.assertEqual(len(graph.crossfade_nodes), count - 1)
                self.assertEqual(len(set(graph.labels)), len(graph.labels))

    def test_two_images_chain_directly_to_sink(self) -> None:
        graph = compile_slideshow([(10, 10), (20, 20)], 1.0, 0.5, 25, CanvasDimensions(20, 20))
        self.assertEqual(len(graph.crossfade_nodes), 1)
        self.assertEqual(
            serialize_node(graph.crossfade_nodes[0]),
            "[v0][v1]xfade=transition=fade:duration=0.5:offset=1.00[vfinal]",
        )

    def test_compilation_is_deterministic(self) -> None:
        first = serialize_graph(compile_slideshow(SCENARIO_A_SIZES, 2.5, 0.7, 24, CANVAS))
        second = serialize_graph(compile_slideshow(list(SCENARIO_A_SIZES), 2.5, 0.7, 24, CANVAS))
        self.assertEqual(first, second)

    def test_transform_nodes_are_loop_trim(self) -> None:
        graph = compile_slideshow(SCENARIO_A_SIZES, 1.5, 0.5, 30, CANVAS)
        self.assertTrue(all(node.kind is FilterKind.LOOP_TRIM for node in graph.transform_nodes))
        self.assertEqual([node.inputs for node in graph.transform_nodes], [("0:v",), ("1:v",), ("2:v",)])

    def test_single_image_rejected(self) -> None:
        with self.assertRaises(InvalidInputCount):
            compile_slideshow([(100, 100)], 1.5, 0.5, 30, CANVAS)

    def test_out_of_range_durations_rejected(self) -> None:
        for display, transition in ((0.4, 0.5), (10.5, 0.5), (1.5, 0.05), (1.5, 5.0), (1.5, -0.1)):
            with self.subTest(display=display, transition=transition):
                with self.assertRaises(InvalidDuration):
                    compile_slideshow(SCENARIO_A_SIZES, display, transition, 30, CANVAS)

    def test_zero_transition_is_a_hard_cut_when_allowed(self) -> None:
        limits = TimingLimits(transition_min=0.0)
        graph = compile_slideshow(SCENARIO_A_SIZES, 1.5, 0.0, 30, CANVAS, limits)
        text = serialize_graph(graph)
        self.assertIn("xfade=transition=fade:duration=0:offset=1.50", text)
        self.assertIn("trim=duration=1.5,", text)

    def test_non_positive_fps_rejected(self) -> None:
        with self.assertRaises(ValueError):
            compile_slideshow(SCENARIO_A_SIZES, 1.5, 0.5, 0, CANVAS)


class FormattingTest(unittest.TestCase):
    def test_format_number(self) -> None:
        self.assertEqual(format_number(2.0), "2")
        self.assertEqual(format_number(1.75), "1.75")
        self.assertEqual(format_number(0.5), "0.5")
        self.assertEqual(format_number(10), "10")
        self.assertEqual(format_number(0.0), "0")

    def test_format_offset(self) -> None:
        self.assertEqual(format_offset(1.5), "1.50")
        self.assertEqual(format_offset(0.1 * 3), "0.30")

    def test_format_offset_rounds_ties_up(self) -> None:
        self.assertEqual(format_offset(1.125), "1.13")
        self.assertEqual(format_offset(0.625), "0.63")
        self.assertEqual(format_offset(2.0), "2.00")
        # 1.005 is stored just below the tie.
        self.assertEqual(format_offset(1.005), "1.00")


if __name__ == "__main__":
    unittest.main()
