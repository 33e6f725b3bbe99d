"""Unit tests for 2D spatial and frequency-domain operations."""

import numpy as np
import pytest

from accelvec.device import EmulatedDevice
from accelvec.errors import (
    PlacementError,
    ResourceError,
    SizeMismatchError,
    UnsupportedOperationError,
)
from accelvec.linalg import AccelVectorFactory, CoherenceState


@pytest.fixture(params=["host", "accel"])
def factory(request, host_factory, accel_factory):
    """Run 2D tests against both backends."""
    return host_factory if request.param == "host" else accel_factory


def _grid(vec):
    return vec.complex_view().reshape(vec.vector_height(), vec.vector_width())


class TestAddressing:
    """Tests for (x, y) element access."""

    def test_row_major_layout(self, factory):
        v = factory.create_complex_2d(4, 3)
        v.set_xy(2, 1, 5 + 1j)

        assert v.vector_size() == 12
        assert v.get(2 + 1 * 4) == 5 + 1j
        assert v.get_xy(2, 1) == 5 + 1j
        assert _grid(v)[1, 2] == 5 + 1j

    def test_invalid_extent(self, factory):
        with pytest.raises(ValueError):
            factory.create_complex_2d(0, 4)


class TestPaste:
    """Tests for spatial paste."""

    def test_paste_at_offset(self, factory):
        src = factory.create_complex_2d(2, 2)
        for i, val in enumerate([1, 2, 3, 4]):
            src.set(i, val)
        dst = factory.create_complex_2d(4, 4)
        dst.add_const(9.0)

        dst.paste(src, 1, 2)

        assert dst.get_xy(1, 2) == 1
        assert dst.get_xy(2, 3) == 4
        assert dst.get_xy(0, 0) == 9

    def test_paste_zero_first(self, factory):
        src = factory.create_complex_2d(2, 2)
        src.add_const(1.0)
        dst = factory.create_complex_2d(4, 4)
        dst.add_const(9.0)

        dst.paste(src, 0, 0, zero_first=True)

        assert dst.sum_elements() == pytest.approx(4.0)

    @pytest.mark.parametrize("x,y", [(3, 0), (0, 3), (-1, 0), (0, -1)])
    def test_out_of_bounds(self, factory, x, y):
        src = factory.create_complex_2d(2, 2)
        dst = factory.create_complex_2d(4, 4)
        with pytest.raises(PlacementError):
            dst.paste(src, x, y)


class TestPasteFreq:
    """Tests for Fourier-domain zero padding and cropping."""

    def test_upsample_keeps_native_ordering(self, factory):
        src = factory.create_complex_2d(4, 4)
        src.set_xy(1, 0, 1.0)  # +1 horizontal frequency
        src.set_xy(3, 2, 2.0)  # (-1, -2)
        dst = factory.create_complex_2d(8, 8)
        dst.add_const(5.0)

        dst.paste_freq(src)

        assert dst.get_xy(1, 0) == 1.0
        assert dst.get_xy(7, 6) == 2.0
        # Everything not covered by the source is zero filled
        assert dst.sum_elements() == pytest.approx(3.0)

    @pytest.mark.parametrize("x_off,y_off", [(0, 0), (3, -2)])
    def test_double_size_places_upper_half_at_end(self, factory, fill, x_off, y_off):
        wi, hi, wo, ho = 4, 6, 8, 12
        src = factory.create_complex_2d(wi, hi)
        data = fill(src).view(np.complex64).reshape(hi, wi)
        dst = factory.create_complex_2d(wo, ho)

        dst.paste_freq(src, x_off, y_off)

        expected = np.zeros((ho, wo), dtype=np.complex64)
        for y in range(hi):
            yo = ((y if y < hi // 2 else y + ho // 2) + y_off) % ho
            for x in range(wi):
                xo = ((x if x < wi // 2 else x + wo // 2) + x_off) % wo
                expected[yo, xo] = data[y, x]
        np.testing.assert_array_equal(dst.vector_data().view(np.complex64).reshape(ho, wo), expected)

    def test_crop_keeps_low_frequencies(self, factory):
        src = factory.create_complex_2d(8, 8)
        src.set_xy(6, 0, 1.0)  # -2 is kept
        src.set_xy(2, 0, 7.0)  # +2 does not fit
        dst = factory.create_complex_2d(4, 4)

        dst.paste_freq(src)

        assert dst.get_xy(2, 0) == 1.0
        assert dst.sum_elements() == pytest.approx(1.0)

    def test_inverse_offset_recovers_layout(self, factory, fill):
        src = factory.create_complex_2d(8, 8)
        data = fill(src)
        shifted = factory.create_complex_2d(8, 8)
        back = factory.create_complex_2d(8, 8)

        shifted.paste_freq(src, 2, 1)
        back.paste_freq(shifted, -2, -1)

        np.testing.assert_array_equal(back.vector_data(), data)
        assert shifted.get_xy(2, 1) == src.get_xy(0, 0)

    def test_paste_freq_from_self(self, factory, fill):
        v = factory.create_complex_2d(4, 4)
        data = fill(v)

        v.paste_freq(v, 1, 0)
        v.paste_freq(v, -1, 0)

        np.testing.assert_array_equal(v.vector_data(), data)

    def test_kernel_and_portable_paths_identical(self, accel_factory, host_factory, fill):
        src = accel_factory.create_complex_2d(4, 4)
        data = fill(src)
        host_src = host_factory.create_complex_2d(4, 4)
        host_src.vector_data()[:] = data

        fast = accel_factory.create_complex_2d(8, 8)
        fast.paste_freq(src, 1, 3)
        portable = accel_factory.create_complex_2d(8, 8)
        portable.paste_freq(host_src, 1, 3)
        host_dst = host_factory.create_complex_2d(8, 8)
        host_dst.paste_freq(host_src, 1, 3)

        assert fast.state is CoherenceState.DEVICE_AUTHORITATIVE
        np.testing.assert_array_equal(fast.vector_data(), portable.vector_data())
        np.testing.assert_array_equal(fast.vector_data(), host_dst.vector_data())


class TestFourierShift:
    """Tests for phase-ramp multiplication."""

    def test_phase_ramp(self, factory):
        v = factory.create_complex_2d(8, 8)
        v.add_const(1.0)

        v.fourier_shift(1.0, 0.0)

        assert v.get_xy(2, 0) == pytest.approx(1j, abs=1e-6)
        assert v.get_xy(4, 5) == pytest.approx(-1.0, abs=1e-6)

    def test_shift_moves_spectrum_peak(self, factory):
        v = factory.create_complex_2d(8, 8)
        v.add_const(1.0)

        v.fourier_shift(1.0, 2.0)
        v.fft2d()

        assert v.n_largest_idx(1) == [1 + 2 * 8]

    def test_non_square_rejected(self, factory):
        v = factory.create_complex_2d(8, 4)
        with pytest.raises(ValueError):
            v.fourier_shift(1.0, 0.0)


class TestFFT2D:
    """Tests for in-place 2D transforms."""

    @pytest.mark.parametrize("n", [8, 64, 256])
    def test_round_trip_scaled_by_n(self, factory, fill, n):
        v = factory.create_complex_2d(n, n)
        data = fill(v)

        v.fft2d()
        v.fft2d(inverse=True)

        # The inverse is unnormalized
        np.testing.assert_allclose(v.vector_data() / (n * n), data, atol=1e-4)

    def test_matches_numpy(self, factory, fill):
        v = factory.create_complex_2d(16, 8)
        fill(v)
        expected = np.fft.fft2(_grid(v).astype(np.complex128))

        v.fft2d()

        np.testing.assert_allclose(_grid(v), expected, rtol=1e-4, atol=1e-3)


class TestPixels:
    """Tests for 16-bit sample ingestion."""

    def test_set_from_16bit_pixels(self, factory, fill):
        v = factory.create_complex_2d(4, 4)
        fill(v)

        v.set_from_16bit_pixels(np.arange(16, dtype=np.uint16) * 1000)

        pairs = v.vector_data().reshape(-1, 2)
        np.testing.assert_array_equal(pairs[:, 0], np.arange(16) * 1000.0)
        np.testing.assert_array_equal(pairs[:, 1], 0.0)

    def test_accepts_in_range_integers(self, factory):
        v = factory.create_complex_2d(2, 2)
        v.set_from_16bit_pixels([0, 1, 65535, 2])
        assert v.get(2) == 65535.0

    @pytest.mark.parametrize(
        "pixels",
        [np.array([0, -1, 2, 3]), np.array([0, 70000, 2, 3]), np.zeros(4, dtype=np.float32)],
    )
    def test_rejects_non_16bit_input(self, factory, pixels):
        v = factory.create_complex_2d(2, 2)
        with pytest.raises(ValueError):
            v.set_from_16bit_pixels(pixels)

    def test_size_mismatch(self, factory):
        v = factory.create_complex_2d(4, 4)
        with pytest.raises(SizeMismatchError):
            v.set_from_16bit_pixels(np.zeros(15, dtype=np.uint16))

    def test_accel_ingest_stays_on_device(self, accel_factory):
        v = accel_factory.create_complex_2d(4, 4)
        v.set_from_16bit_pixels(np.ones(16, dtype=np.uint16))

        assert v.state is CoherenceState.DEVICE_AUTHORITATIVE
        assert v.transfers == 0

    def test_exceeding_staging_capacity(self):
        factory = AccelVectorFactory(EmulatedDevice(staging_bytes=64, fft="numpy"))
        v = factory.create_complex_2d(8, 8)

        with pytest.raises(ResourceError):
            v.set_from_16bit_pixels(np.ones(64, dtype=np.uint16))
        assert v.state is CoherenceState.SYNCED


class TestVolumes:
    """Tests for 3D interop."""

    @pytest.fixture
    def volume(self, host_factory):
        vol = host_factory.create_complex_3d(4, 4, 3)
        plane = host_factory.create_complex_2d(4, 4)
        for z in range(3):
            plane.zero()
            plane.add_const(float(z + 1))
            vol.set_plane(z, plane)
        return vol

    def test_layout(self, volume):
        assert volume.vector_size() == 48
        assert volume.get_xyz(1, 2, 2) == 3.0
        volume.set_xyz(1, 2, 0, 7j)
        assert volume.get(1 + 4 * (2 + 4 * 0)) == 7j

    def test_slice(self, host_factory, volume):
        dst = host_factory.create_complex_2d(4, 4)
        dst.slice(volume, 1)
        np.testing.assert_array_equal(dst.complex_view(), 2.0)

        with pytest.raises(PlacementError):
            dst.slice(volume, 3)

    def test_project(self, host_factory, volume):
        dst = host_factory.create_complex_2d(4, 4)

        dst.project(volume)
        np.testing.assert_array_equal(dst.complex_view(), 6.0)

        dst.project(volume, 1, 3)
        np.testing.assert_array_equal(dst.complex_view(), 5.0)

        with pytest.raises(PlacementError):
            dst.project(volume, 2, 2)

    def test_shape_mismatch(self, host_factory, volume):
        dst = host_factory.create_complex_2d(4, 2)
        with pytest.raises(SizeMismatchError):
            dst.slice(volume, 0)

    def test_fft3d_round_trip(self, host_factory, fill):
        vol = host_factory.create_complex_3d(8, 4, 2)
        data = fill(vol)

        vol.fft3d()
        vol.fft3d(inverse=True)

        np.testing.assert_allclose(vol.vector_data() / 64, data, atol=1e-5)

    def test_accel_slice_and_project_unsupported(self, accel_factory, volume):
        dst = accel_factory.create_complex_2d(4, 4)
        with pytest.raises(UnsupportedOperationError):
            dst.slice(volume, 0)
        with pytest.raises(UnsupportedOperationError):
            dst.project(volume)
