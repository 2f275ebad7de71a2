import random

import pytest
import torch

from kernlab.errors import BufferSizeMismatch, InvalidGeometry
from kernlab.ops import median_filter, vector_add
from kernlab.ops.python import reference as reference_ops
from kernlab.ops.sorting import bitonic_sort, full_sort, insertion_sort


def _ramp(height: int, width: int) -> torch.Tensor:
    return torch.arange(1, height * width + 1, dtype=torch.int32).view(height, width)


def test_known_values_on_ramp():
    image = _ramp(7, 7)
    out = median_filter(image, 1)
    # window {15..17, 22..24, 29..31} is centred at x=1, y=3
    assert out[3, 1].item() == 23
    assert out[3, 3].item() == 25


def test_ramp_interior_equals_input_and_border_is_zero():
    image = _ramp(7, 7)
    out = median_filter(image, 1)
    torch.testing.assert_close(out[1:-1, 1:-1], image[1:-1, 1:-1])
    assert out[0].eq(0).all() and out[-1].eq(0).all()
    assert out[:, 0].eq(0).all() and out[:, -1].eq(0).all()


@pytest.mark.parametrize("radius", [1, 2, 3])
def test_constant_image_yields_constant_interior(radius):
    image = torch.full((9, 10), 417, dtype=torch.int32)
    out = median_filter(image, radius)
    interior = out[radius:-radius, radius:-radius]
    assert interior.eq(417).all()


def test_single_interior_pixel():
    torch.manual_seed(0)
    image = (torch.randperm(25) + 1).to(torch.int32).view(5, 5)
    out = median_filter(image, 2)
    assert out[2, 2].item() == 13
    mask = torch.ones(5, 5, dtype=torch.bool)
    mask[2, 2] = False
    assert out[mask].eq(0).all()


@pytest.mark.parametrize("shape", [(4, 9), (9, 4), (4, 4)])
def test_degenerate_geometry_raises(shape):
    image = torch.zeros(shape, dtype=torch.int32)
    with pytest.raises(InvalidGeometry):
        median_filter(image, 2)


@pytest.mark.parametrize("radius", [0, -1])
def test_non_positive_radius_raises(radius):
    with pytest.raises(InvalidGeometry):
        median_filter(torch.zeros(8, 8), radius)


def test_unknown_border_raises():
    with pytest.raises(ValueError):
        median_filter(torch.zeros(8, 8), 1, border="mirror")


def test_out_buffer_is_filled_in_place(noisy_image):
    out = torch.full((noisy_image.numel(),), -1, dtype=noisy_image.dtype)
    result = median_filter(noisy_image, 1, out=out)
    assert result is out
    expected = reference_ops.median_filter(noisy_image, 1)
    torch.testing.assert_close(out.view_as(noisy_image), expected)


def test_out_buffer_size_mismatch(noisy_image):
    out = torch.zeros(noisy_image.numel() - 1, dtype=noisy_image.dtype)
    with pytest.raises(BufferSizeMismatch):
        median_filter(noisy_image, 1, out=out)


def test_input_is_not_mutated(noisy_image):
    original = noisy_image.clone()
    median_filter(noisy_image, 2)
    torch.testing.assert_close(noisy_image, original)


@pytest.mark.parametrize("dtype", [torch.uint8, torch.int16, torch.int64, torch.float32])
def test_dtype_is_preserved(dtype):
    image = (_ramp(6, 6) % 100).to(dtype)
    out = median_filter(image, 1)
    assert out.dtype == dtype
    assert out.shape == image.shape


def test_batched_planes_are_independent(noisy_image):
    stacked = torch.stack([noisy_image, noisy_image.flip(0)])
    out = median_filter(stacked, 1)
    torch.testing.assert_close(out[0], median_filter(noisy_image, 1))
    torch.testing.assert_close(out[1], median_filter(noisy_image.flip(0), 1))


def test_border_keep_and_constant(noisy_image):
    kept = median_filter(noisy_image, 1, border="keep")
    assert torch.equal(kept[0], noisy_image[0])
    assert torch.equal(kept[:, -1], noisy_image[:, -1])

    filled = median_filter(noisy_image, 1, border="constant", fill_value=7)
    assert filled[0].eq(7).all() and filled[:, 0].eq(7).all()
    torch.testing.assert_close(filled[1:-1, 1:-1], kept[1:-1, 1:-1])


def test_border_replicate_corner():
    image = torch.tensor([[1, 9, 4], [7, 2, 8], [3, 6, 5]], dtype=torch.int32)
    out = median_filter(image, 1, border="replicate")
    corner = torch.tensor([1, 1, 9, 1, 1, 9, 7, 7, 2])
    assert out[0, 0].item() == corner.sort().values[4].item()
    assert out[1, 1].item() == 5


def test_border_reflect_requires_small_radius():
    with pytest.raises(InvalidGeometry):
        median_filter(torch.zeros(3, 8, dtype=torch.int32), 3, border="reflect")


def test_padded_border_filters_every_pixel():
    image = torch.full((2, 3), 5, dtype=torch.int32)
    out = median_filter(image, 2, border="replicate")
    assert out.eq(5).all()


@pytest.mark.parametrize("border", ["replicate", "reflect"])
def test_padded_border_exact_for_int64(border):
    value = 2**53 + 1
    image = torch.full((5, 5), value, dtype=torch.int64)
    out = median_filter(image, 1, border=border)
    assert out.dtype == torch.int64
    assert out[2, 2].item() == 9007199254740993
    assert out.eq(value).all()


def test_padding_indices_match_torch_pad():
    torch.manual_seed(5)
    planes = torch.randint(0, 100, (2, 4, 6)).to(torch.float64)
    for border in ("replicate", "reflect"):
        padded = reference_ops.pad_for_border(planes, 2, border)
        expected = torch.nn.functional.pad(planes, (2, 2, 2, 2), mode=border)
        torch.testing.assert_close(padded, expected)


def test_window_median_matches_vectorised_path(noisy_image):
    height, width = noisy_image.shape
    samples = noisy_image.reshape(-1).tolist()
    expected = reference_ops.median_filter(noisy_image, 2)
    buffer = [0] * 25
    for y in range(2, height - 2):
        for x in range(2, width - 2):
            value = reference_ops.window_median(
                x, y, samples, width, height, 2, buffer=buffer
            )
            assert value == expected[y, x].item()


@pytest.mark.parametrize("sort", [full_sort, insertion_sort, bitonic_sort])
def test_window_median_independent_of_gather_order(noisy_image, sort):
    height, width = noisy_image.shape
    samples = noisy_image.reshape(-1).tolist()
    offsets = reference_ops.window_offsets(2)
    baseline = reference_ops.window_median(5, 6, samples, width, height, 2)
    rng = random.Random(3)
    for _ in range(10):
        shuffled = offsets[:]
        rng.shuffle(shuffled)
        value = reference_ops.window_median(
            5, 6, samples, width, height, 2, sort=sort, offsets=shuffled
        )
        assert value == baseline


def test_window_median_rejects_border_pixel():
    samples = list(range(25))
    with pytest.raises(InvalidGeometry):
        reference_ops.window_median(0, 2, samples, 5, 5, 1)
    with pytest.raises(InvalidGeometry):
        reference_ops.window_median(2, 4, samples, 5, 5, 1)


def test_window_median_rejects_wrong_buffer_and_offsets():
    samples = list(range(25))
    with pytest.raises(BufferSizeMismatch):
        reference_ops.window_median(2, 2, samples, 5, 5, 1, buffer=[0] * 8)
    with pytest.raises(InvalidGeometry):
        reference_ops.window_median(
            2, 2, samples, 5, 5, 1, offsets=reference_ops.window_offsets(1)[:-1]
        )



def test_window_median_requires_offset_permutation():
    samples = list(range(25))
    offsets = reference_ops.window_offsets(1)
    bad_offsets = [
        [(0, 0)] * 9,
        offsets[:-1] + [(2, 2)],
        offsets[:-1] + [(0, 0)],
        offsets + [(0, 0)],
    ]
    for bad in bad_offsets:
        with pytest.raises(InvalidGeometry):
            reference_ops.window_median(2, 2, samples, 5, 5, 1, offsets=bad)
    assert reference_ops.window_median(
        2, 2, samples, 5, 5, 1, offsets=reversed(offsets)
    ) == 12


def test_vector_add_values():
    a = torch.arange(1024, dtype=torch.float32)
    b = torch.ones(1024, dtype=torch.float32)
    dst = vector_add(a, b)
    torch.testing.assert_close(dst, a + 1.0)


def test_vector_add_out_and_errors():
    a = torch.arange(8, dtype=torch.int32)
    out = torch.empty(8, dtype=torch.int32)
    assert vector_add(a, a, out=out) is out
    torch.testing.assert_close(out, a * 2)

    with pytest.raises(ValueError):
        vector_add(a, torch.arange(9, dtype=torch.int32))
    with pytest.raises(BufferSizeMismatch):
        vector_add(a, a, out=torch.empty(7, dtype=torch.int32))
