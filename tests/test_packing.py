"""Tests for size resolution and channel compositing."""

import unittest

import numpy as np

from MaskBrew.core import ArrayImageSource, InvalidDimensionsError, PackingError, Slot
from MaskBrew.packing import (
    DEFAULT_SIZE,
    ChannelSpec,
    PackRequest,
    composite,
    default_output_dir,
    default_output_name,
    pack,
    resolve,
)

from conftest import SampledSource, constant_source, gradient_source


class TestResolve(unittest.TestCase):
    def test_matching_sources_have_no_drops(self):
        sources = {slot: constant_source(16, 8, 0.3) for slot in Slot}
        res = resolve(sources)
        self.assertEqual(res.size, (16, 8))
        self.assertEqual(res.dropped, frozenset())
        self.assertFalse(res.used_default)

    def test_no_sources_uses_default_size(self):
        res = resolve({})
        self.assertEqual(res.size, (512, 512))
        self.assertEqual(DEFAULT_SIZE, (512, 512))
        self.assertTrue(res.used_default)
        self.assertEqual(res.dropped, frozenset())

    def test_no_sources_custom_default(self):
        res = resolve(PackRequest.defaults(), default_size=(64, 32))
        self.assertEqual(res.size, (64, 32))

    def test_single_odd_source_is_dropped(self):
        sources = {
            Slot.METALLIC: constant_source(8, 8, 0.1),
            Slot.AMBIENT_OCCLUSION: constant_source(8, 8, 0.2),
            Slot.DETAIL_MASK: constant_source(4, 4, 0.3),
            Slot.SMOOTHNESS: constant_source(8, 8, 0.4),
        }
        res = resolve(sources)
        self.assertEqual(res.size, (8, 8))
        self.assertEqual(res.dropped, frozenset({Slot.DETAIL_MASK}))
        self.assertEqual(len(res.mismatches), 1)
        mismatch = res.mismatches[0]
        self.assertEqual(mismatch.actual, (4, 4))
        self.assertEqual(mismatch.expected, (8, 8))
        self.assertIn("Detail Mask", mismatch.message())

    def test_first_present_slot_sets_size(self):
        # Metallic absent: AO is first and wins even against the majority.
        sources = {
            Slot.METALLIC: None,
            Slot.AMBIENT_OCCLUSION: constant_source(2, 2, 0.5),
            Slot.DETAIL_MASK: constant_source(8, 8, 0.5),
            Slot.SMOOTHNESS: constant_source(8, 8, 0.5),
        }
        res = resolve(sources)
        self.assertEqual(res.size, (2, 2))
        self.assertEqual(res.dropped, frozenset({Slot.DETAIL_MASK, Slot.SMOOTHNESS}))

    def test_odd_metallic_sets_size_and_drops_the_rest(self):
        sources = {
            Slot.METALLIC: constant_source(4, 4, 0.1),
            Slot.AMBIENT_OCCLUSION: constant_source(8, 8, 0.2),
            Slot.DETAIL_MASK: constant_source(8, 8, 0.3),
            Slot.SMOOTHNESS: constant_source(8, 8, 0.4),
        }
        res = resolve(sources)
        self.assertEqual(res.size, (4, 4))
        self.assertEqual(
            res.dropped,
            frozenset({Slot.AMBIENT_OCCLUSION, Slot.DETAIL_MASK, Slot.SMOOTHNESS}),
        )
        self.assertTrue(all(m.expected == (4, 4) for m in res.mismatches))

    def test_zero_width_source_is_invalid(self):
        src = SampledSource(0, 4, lambda x, y: 0.0)
        with self.assertRaises(InvalidDimensionsError):
            resolve({Slot.SMOOTHNESS: src})

    def test_invalid_default_size_rejected(self):
        with self.assertRaises(InvalidDimensionsError):
            resolve({}, default_size=(0, 512))

    def test_accepts_pack_request(self):
        request = PackRequest.from_sources(detail_mask=constant_source(3, 5, 0.5))
        self.assertEqual(resolve(request).size, (3, 5))


class TestComposite(unittest.TestCase):
    def test_buffer_shape_and_length(self):
        packed = composite(PackRequest.defaults(), 7, 3)
        self.assertEqual(packed.pixels.shape, (3, 7, 4))
        self.assertEqual(len(packed.to_bytes()), 7 * 3 * 4 * 4)
        self.assertEqual(packed.describe(), "7x3 RGBA")

    def test_deterministic(self):
        request = PackRequest.from_sources(
            metallic=gradient_source(5, 4),
            smoothness=gradient_source(5, 4),
            invert_smoothness=True,
        )
        a = composite(request, 5, 4)
        b = composite(request, 5, 4)
        self.assertEqual(a.to_bytes(), b.to_bytes())

    def test_invert_flag(self):
        for s in (0.0, 0.25, 1.0):
            src = constant_source(2, 2, s)
            plain = composite(PackRequest.from_sources(smoothness=src), 2, 2)
            inverted = composite(
                PackRequest.from_sources(smoothness=src, invert_smoothness=True), 2, 2,
            )
            self.assertAlmostEqual(plain.pixel(1, 1)[3], s, places=6)
            self.assertAlmostEqual(inverted.pixel(1, 1)[3], 1.0 - s, places=6)

    def test_invert_applies_to_fallback(self):
        request = PackRequest.from_sources(
            fallbacks={Slot.SMOOTHNESS: 0.2}, invert_smoothness=True,
        )
        packed = composite(request, 1, 1)
        self.assertAlmostEqual(packed.pixel(0, 0)[3], 0.8, places=6)

    def test_absent_metallic_uses_fallback(self):
        request = PackRequest.from_sources(
            ambient_occlusion=gradient_source(4, 4),
            detail_mask=constant_source(4, 4, 0.9),
            smoothness=constant_source(4, 4, 0.1),
            fallbacks={Slot.METALLIC: 0.5},
        )
        packed = composite(request, 4, 4)
        np.testing.assert_array_equal(packed.channel(Slot.METALLIC), 0.5)

    def test_channels_map_to_rgba(self):
        request = PackRequest.from_sources(
            metallic=constant_source(2, 2, 0.1),
            ambient_occlusion=constant_source(2, 2, 0.2),
            detail_mask=constant_source(2, 2, 0.3),
            smoothness=constant_source(2, 2, 0.4),
        )
        r, g, b, a = composite(request, 2, 2).pixel(0, 1)
        self.assertAlmostEqual(r, 0.1, places=6)
        self.assertAlmostEqual(g, 0.2, places=6)
        self.assertAlmostEqual(b, 0.3, places=6)
        self.assertAlmostEqual(a, 0.4, places=6)

    def test_row_major_sampling(self):
        src = gradient_source(3, 2)
        packed = composite(PackRequest.from_sources(metallic=src), 3, 2)
        for y in range(2):
            for x in range(3):
                self.assertAlmostEqual(packed.pixel(x, y)[0], src.sample(x, y), places=6)

    def test_sample_only_source_matches_array_source(self):
        arr_src = gradient_source(4, 3)
        sampled = SampledSource(4, 3, arr_src.sample)
        a = composite(PackRequest.from_sources(detail_mask=arr_src), 4, 3)
        b = composite(PackRequest.from_sources(detail_mask=sampled), 4, 3)
        self.assertEqual(a.to_bytes(), b.to_bytes())

    def test_non_positive_size_rejected(self):
        for w, h in ((0, 4), (4, 0), (-1, 4)):
            with self.assertRaises(InvalidDimensionsError):
                composite(PackRequest.defaults(), w, h)

    def test_unresolved_mismatch_raises(self):
        request = PackRequest.from_sources(metallic=constant_source(4, 4, 0.5))
        with self.assertRaises(PackingError):
            composite(request, 8, 8)

    def test_to_uint8_quantizes(self):
        request = PackRequest.from_sources(fallbacks={Slot.METALLIC: 0.0})
        quantized = composite(request, 2, 1).to_uint8()
        self.assertEqual(quantized.dtype, np.uint8)
        self.assertEqual(quantized[0, 0].tolist(), [0, 255, 128, 128])

    def test_result_is_read_only(self):
        packed = composite(PackRequest.defaults(), 2, 2)
        with self.assertRaises(ValueError):
            packed.pixels[0, 0, 0] = 1.0


class TestPackRequest(unittest.TestCase):
    def test_defaults(self):
        request = PackRequest.defaults()
        fallbacks = [spec.fallback for _, spec in request.channels()]
        self.assertEqual(fallbacks, [0.5, 1.0, 0.5, 0.5])
        self.assertFalse(request.invert_smoothness)
        self.assertIsNone(request.base_source())

    def test_fallback_out_of_range_rejected(self):
        with self.assertRaises(ValueError):
            ChannelSpec(fallback=1.5)

    def test_invert_ignored_outside_smoothness(self):
        request = PackRequest(
            metallic=ChannelSpec(constant_source(2, 2, 0.2), fallback=0.5, invert=True),
            detail_mask=ChannelSpec(fallback=0.3, invert=True),
        )
        self.assertFalse(request.invert_smoothness)
        packed = composite(request, 2, 2)
        np.testing.assert_allclose(packed.channel(Slot.METALLIC), 0.2, atol=1e-6)
        np.testing.assert_allclose(packed.channel(Slot.DETAIL_MASK), 0.3, atol=1e-6)

    def test_with_dropped_clears_sources(self):
        request = PackRequest.from_sources(
            metallic=constant_source(2, 2, 0.1),
            ambient_occlusion=constant_source(2, 2, 0.2),
        )
        dropped = request.with_dropped({Slot.METALLIC})
        self.assertIsNone(dropped.metallic.source)
        self.assertIsNotNone(dropped.ambient_occlusion.source)
        self.assertIsNotNone(request.metallic.source)
        self.assertIs(request.with_dropped(()), request)

    def test_base_source_priority(self):
        ao = constant_source(2, 2, 0.1, identifier="Rock_AO")
        smooth = constant_source(2, 2, 0.1, identifier="Rock_Smooth")
        request = PackRequest.from_sources(ambient_occlusion=ao, smoothness=smooth)
        self.assertIs(request.base_source(), ao)


class TestPackEndToEnd(unittest.TestCase):
    def test_four_constant_sources(self):
        sources = [constant_source(2, 2, 0.25) for _ in range(4)]
        request = PackRequest.from_sources(*sources)
        packed, res = pack(request)
        self.assertEqual(packed.size, (2, 2))
        self.assertEqual(res.dropped, frozenset())
        for y in range(2):
            for x in range(2):
                self.assertEqual(packed.pixel(x, y), (0.25, 0.25, 0.25, 0.25))

    def test_no_sources_default_fallbacks(self):
        packed, res = pack(PackRequest.defaults())
        self.assertEqual(packed.size, (512, 512))
        self.assertTrue(res.used_default)
        expected = np.array([0.5, 1.0, 0.5, 0.5], dtype=np.float32)
        self.assertTrue(np.all(packed.pixels == expected))

    def test_dropped_slot_falls_back_and_warns(self):
        request = PackRequest.from_sources(
            metallic=constant_source(4, 4, 0.9),
            ambient_occlusion=constant_source(2, 2, 0.1),
            fallbacks={Slot.AMBIENT_OCCLUSION: 0.7},
        )
        with self.assertLogs("mask_packer.packing", level="WARNING") as cm:
            packed, res = pack(request)
        self.assertEqual(res.dropped, frozenset({Slot.AMBIENT_OCCLUSION}))
        self.assertTrue(any("Ambient Occlusion" in line for line in cm.output))
        np.testing.assert_allclose(packed.channel(Slot.AMBIENT_OCCLUSION), 0.7)
        np.testing.assert_allclose(packed.channel(Slot.METALLIC), 0.9)


class TestOutputDefaults(unittest.TestCase):
    def test_name_from_first_present_source(self):
        request = PackRequest.from_sources(
            detail_mask=constant_source(2, 2, 0.5, identifier="Rock_Detail"),
            smoothness=constant_source(2, 2, 0.5, identifier="Other_Smooth"),
        )
        self.assertEqual(default_output_name(request), "Rock_Mask")

    def test_name_without_sources(self):
        self.assertEqual(default_output_name(PackRequest.defaults()), "LitMask")

    def test_dir_without_path_uses_fallback(self):
        request = PackRequest.from_sources(metallic=constant_source(2, 2, 0.5))
        self.assertEqual(default_output_dir(request, "out"), "out")

    def test_dir_from_backslash_source_path(self):
        src = ArrayImageSource(np.zeros((2, 2), dtype=np.float32), "Rock_AO",
                               path="textures\\rock\\Rock_AO.png")
        request = PackRequest.from_sources(ambient_occlusion=src)
        self.assertEqual(default_output_dir(request, "out"), "textures/rock")


if __name__ == "__main__":
    unittest.main(verbosity=2)
