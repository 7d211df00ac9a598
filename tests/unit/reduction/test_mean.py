import torch
from pytest import mark
from torch.testing import assert_close
from utils.tensors import randn_, tensor_, zeros_

from torchspmm.reduction import Mean


def test_init_is_zero():
    assert Mean().init(torch.float32) == 0


def test_finalize_divides_by_count():
    acc = tensor_([[[6.0, 3.0], [5.0, -5.0]]])
    count = tensor_([3, 2])

    out, arg = Mean().finalize(acc, count)

    assert arg is None
    assert_close(out, tensor_([[[2.0, 1.0], [2.5, -2.5]]]))


def test_finalize_empty_row_is_zero():
    acc = zeros_([2, 1, 3])
    count = tensor_([0])

    out, _ = Mean().finalize(acc, count)

    assert_close(out, zeros_([2, 1, 3]))
    assert out.isfinite().all()


@mark.parametrize("dtype", [torch.int32, torch.int64])
def test_finalize_truncates_integers(dtype: torch.dtype):
    acc = tensor_([[[7], [-7]]], dtype=dtype)
    count = tensor_([2, 2])

    out, _ = Mean().finalize(acc, count)

    assert out.dtype == dtype
    assert torch.equal(out, tensor_([[[3], [-3]]], dtype=dtype))


def test_scale_divides_each_edge_by_the_degree_of_its_row():
    edge_values = randn_([2, 3])
    edge_count = tensor_([1, 4, 0])

    scaled = Mean().scale(edge_values, edge_count)

    expected = edge_values / tensor_([1.0, 4.0, 1.0], dtype=edge_values.dtype)
    assert_close(scaled, expected)


def test_scale_broadcasts_over_features():
    edge_grad = randn_([2, 3, 5])
    edge_count = tensor_([2, 2, 2])

    assert_close(Mean().scale(edge_grad, edge_count), edge_grad / 2)


def test_representations():
    R = Mean()
    assert repr(R) == "Mean()"
    assert str(R) == "Mean"
