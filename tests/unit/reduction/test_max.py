import math

import torch
from pytest import mark
from torch.testing import assert_close
from utils.tensors import full_, randn_, tensor_

from torchspmm.reduction import Max


@mark.parametrize(
    ["dtype", "expected"],
    [
        (torch.float32, -math.inf),
        (torch.float64, -math.inf),
        (torch.int32, -(2**31)),
        (torch.int64, -(2**63)),
    ],
)
def test_init(dtype: torch.dtype, expected: int | float):
    assert Max().init(dtype) == expected


def test_update_keeps_maximum_and_its_edge():
    reduction = Max()
    contributions = tensor_([[[1.0], [4.0]]])
    row = tensor_([0, 0])
    acc = full_([1, 1, 1], reduction.init(torch.float32))
    arg = full_([1, 1, 1], 2)

    acc, arg = reduction.update(acc, contributions, row, arg)

    assert_close(acc, tensor_([[[4.0]]]))
    assert torch.equal(arg, tensor_([[[1]]]))


def test_update_ties_keep_first_edge():
    reduction = Max()
    contributions = tensor_([[[7.0, 0.0], [7.0, 1.0], [7.0, 1.0]]])
    row = tensor_([0, 0, 0])
    acc = full_([1, 1, 2], reduction.init(torch.float32))
    arg = full_([1, 1, 2], 3)

    _, arg = reduction.update(acc, contributions, row, arg)

    assert torch.equal(arg, tensor_([[[0, 1]]]))


def test_update_is_independent_per_feature_and_batch():
    reduction = Max()
    contributions = randn_([3, 4, 5])
    row = tensor_([0, 1, 1, 1])
    acc = full_([3, 2, 5], reduction.init(contributions.dtype), dtype=contributions.dtype)
    arg = full_([3, 2, 5], 4)

    acc, arg = reduction.update(acc, contributions, row, arg)

    assert_close(acc[:, 0], contributions[:, 0])
    assert_close(acc[:, 1], contributions[:, 1:].amax(dim=1))
    assert torch.equal(arg[:, 0], torch.zeros_like(arg[:, 0]))
    assert torch.equal(arg[:, 1], contributions[:, 1:].argmax(dim=1) + 1)


@mark.parametrize("dtype", [torch.int32, torch.int64])
def test_update_integers(dtype: torch.dtype):
    reduction = Max()
    contributions = tensor_([[[-5], [-3], [-9]]], dtype=dtype)
    row = tensor_([0, 0, 0])
    acc = full_([1, 1, 1], reduction.init(dtype), dtype=dtype)
    arg = full_([1, 1, 1], 3)

    acc, arg = reduction.update(acc, contributions, row, arg)

    assert torch.equal(acc, tensor_([[[-3]]], dtype=dtype))
    assert torch.equal(arg, tensor_([[[1]]]))


def test_finalize_zeroes_empty_rows():
    acc = tensor_([[[-math.inf, -math.inf]], [[-math.inf, -math.inf]]])
    count = tensor_([0])

    out, _ = Max().finalize(acc, count)

    assert_close(out, torch.zeros_like(acc))


def test_representations():
    R = Max()
    assert repr(R) == "Max()"
    assert str(R) == "Max"


def test_update_skips_nan():
    reduction = Max()
    contributions = tensor_([[[float("nan")], [2.0], [float("nan")]]])
    row = tensor_([0, 0, 0])
    acc = full_([1, 1, 1], reduction.init(torch.float32))
    arg = full_([1, 1, 1], 3)

    acc, arg = reduction.update(acc, contributions, row, arg)

    assert_close(acc, tensor_([[[2.0]]]))
    assert torch.equal(arg, tensor_([[[1]]]))
