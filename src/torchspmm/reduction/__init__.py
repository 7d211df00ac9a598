r"""
A :class:`~torchspmm.reduction._reduction_bases.Reduction` defines how the contributions of the
edges of a row are combined into one output value per feature. Four reductions are available,
selected by name:

* ``"sum"`` (or its alias ``"add"``): :class:`~torchspmm.reduction.Sum`,
* ``"mean"``: :class:`~torchspmm.reduction.Mean`,
* ``"min"``: :class:`~torchspmm.reduction.Min`,
* ``"max"``: :class:`~torchspmm.reduction.Max`.

>>> from torchspmm.reduction import get_reduction
>>>
>>> get_reduction("add")
Sum()
"""

from collections.abc import Mapping
from types import MappingProxyType

from torchspmm._errors import UnknownReductionError

from ._max import Max
from ._mean import Mean
from ._min import Min
from ._reduction_bases import AdditiveReduction, ExtremumReduction, Reduction
from ._sum import Sum

_sum = Sum()

REDUCTIONS: Mapping[str, Reduction] = MappingProxyType(
    {
        "sum": _sum,
        "add": _sum,
        "mean": Mean(),
        "min": Min(),
        "max": Max(),
    }
)


def get_reduction(reduce: str) -> Reduction:
    """
    Returns the :class:`~torchspmm.reduction._reduction_bases.Reduction` registered under the name
    ``reduce``. The lookup is exact and case-sensitive.

    :param reduce: One of ``"sum"``, ``"add"``, ``"mean"``, ``"min"`` or ``"max"``.
    """

    try:
        return REDUCTIONS[reduce]
    except (KeyError, TypeError):
        raise UnknownReductionError(reduce, REDUCTIONS) from None


__all__ = [
    "AdditiveReduction",
    "ExtremumReduction",
    "Max",
    "Mean",
    "Min",
    "REDUCTIONS",
    "Reduction",
    "Sum",
    "get_reduction",
]
