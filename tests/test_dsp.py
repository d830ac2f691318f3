import numpy as np
import pytest

from zerr.dsp import FrequencyTransformer, LinearInterpolator, OnsetDetector, RingBuffer


def _ramp(interp, length):
    values = []
    for _ in range(length):
        values.append(interp.get_value())
        interp.next_step()
    return values


def test_interpolator_matches_linspace():
    interp = LinearInterpolator()
    interp.set_value(0.0, 1.0, 5)
    assert _ramp(interp, 5) == pytest.approx(list(np.linspace(0.0, 1.0, 5)))


def test_interpolator_constant_ramp():
    interp = LinearInterpolator()
    interp.set_value(2.5, 2.5, 8)
    assert _ramp(interp, 8) == pytest.approx([2.5] * 8)


def test_interpolator_position_clamps():
    interp = LinearInterpolator()
    interp.set_value(-1.0, 3.0, 4)
    _ramp(interp, 4)
    clamped = interp.get_value()
    for _ in range(10):
        interp.next_step()
    assert interp.get_value() == clamped


def test_interpolator_reset_restarts_from_start():
    interp = LinearInterpolator()
    interp.set_value(0.0, 1.0, 3)
    _ramp(interp, 3)
    interp.set_value(5.0, 6.0, 3)
    assert interp.get_value() == 5.0


def test_ring_buffer_partial_fill():
    rb = RingBuffer(4)
    rb.enqueue([1.0, 2.0])
    assert len(rb) == 2
    assert rb.get_samples().tolist() == [1.0, 2.0, 0.0, 0.0]


def test_ring_buffer_overwrites_oldest():
    rb = RingBuffer(4)
    rb.enqueue([1.0, 2.0])
    rb.enqueue([3.0, 4.0, 5.0])
    assert len(rb) == rb.capacity == 4
    assert rb.get_samples().tolist() == [2.0, 3.0, 4.0, 5.0]


def test_ring_buffer_rejects_oversized_block():
    rb = RingBuffer(2)
    with pytest.raises(ValueError):
        rb.enqueue([1.0, 2.0, 3.0])


def test_ring_buffer_rejects_zero_capacity():
    with pytest.raises(ValueError):
        RingBuffer(0)


def test_onset_zero_threshold_keeps_everything():
    detector = OnsetDetector(0)
    block = [1.0, 1.0, 0.3, 1.0]
    assert detector.detect_onset_in_block(block).tolist() == block


def test_onset_debounce_within_block():
    detector = OnsetDetector(3)
    result = detector.detect_onset_in_block([1, 1, 0, 1, 0, 0, 1])
    assert result.tolist() == [1.0, 0.0, 0.0, 1.0, 0.0, 0.0, 1.0]


def test_onset_debounce_across_blocks():
    detector = OnsetDetector(3)
    detector.detect_onset_in_block([0, 0, 0, 1])
    result = detector.detect_onset_in_block([1, 0, 0])
    assert result[0] == 0.0


def test_onset_threshold_change_resets_history():
    detector = OnsetDetector(3)
    detector.detect_onset_in_block([0, 0, 0, 1])
    detector.set_debounce_threshold(3)
    assert detector.detect_onset_in_block([1]).tolist() == [1.0]
    assert detector.debounce_threshold == 3


def test_onset_leaves_non_onsets_untouched():
    detector = OnsetDetector(100)
    block = [0.2, -0.7, 0.99]
    assert detector.detect_onset_in_block(block).tolist() == block


def test_power_spectrum_length_and_sign():
    ft = FrequencyTransformer(64)
    rng = np.random.default_rng(0)
    spec = ft.power_spectrum(rng.standard_normal(64))
    assert spec.shape == (ft.fft_size,)
    assert ft.fft_size == 33
    assert np.all(spec >= 0.0)


def test_power_spectrum_of_silence_is_zero():
    ft = FrequencyTransformer(32)
    assert np.all(ft.power_spectrum(np.zeros(32)) == 0.0)


def test_power_spectrum_dc_peaks_at_bin_zero():
    ft = FrequencyTransformer(128)
    assert int(np.argmax(ft.power_spectrum(np.ones(128)))) == 0


def test_power_spectrum_rejects_wrong_length():
    ft = FrequencyTransformer(16)
    with pytest.raises(ValueError):
        ft.power_spectrum(np.zeros(15))


def test_hann_window_shape():
    window = FrequencyTransformer(16).hann_window()
    assert window[0] == pytest.approx(0.0)
    assert window[-1] == pytest.approx(0.0)
    assert np.allclose(window, window[::-1])