from abc import ABC, abstractmethod

import torch
from torch import Tensor

from torchspmm._utils import edge_ids, expand_index


class Reduction(ABC):
    r"""
    Abstract base class for all row-wise reductions. A reduction combines the contributions of the
    edges of each row of a sparse matrix into a single value per row and per feature.

    Contributions are given as a tensor of shape ``[B, E, K]`` (one vector of ``K`` features per
    batch and per edge), together with the vector ``row`` of length ``E`` giving the output row of
    each edge. The accumulator has shape ``[B, M, K]``.
    """

    produces_arg: bool = False
    """Whether this reduction selects one winning edge per output element."""

    @abstractmethod
    def init(self, dtype: torch.dtype) -> int | float:
        """Returns the initial value of the accumulator for the given dtype."""

    @abstractmethod
    def update(
        self, acc: Tensor, contributions: Tensor, row: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        """
        Combines ``contributions`` into ``acc``, following the row mapping ``row``, and returns the
        new accumulator. When ``arg`` is provided and the reduction selects a winner, the returned
        ``arg`` holds, for each output element, the index of the winning edge.

        ``contributions`` must hold every edge of the call: edge indices are positions along its
        second dimension.
        """

    @abstractmethod
    def finalize(
        self, acc: Tensor, count: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        """Turns the accumulator into the output, given the number of edges of each row."""

    def route(self, edge_grad: Tensor, row: Tensor, arg: Tensor | None) -> Tensor:
        """
        Keeps, in a per-edge quantity derived from the upstream gradient (shape ``[B, E, K]``), the
        part that actually flows through each edge.
        """

        return edge_grad

    def scale(self, edge_values: Tensor, edge_count: Tensor) -> Tensor:
        """
        Applies the normalization of the reduction to per-edge quantities (of shape ``[B, E]`` or
        ``[B, E, K]``), given the degree of the row of each edge.
        """

        return edge_values

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}"


class AdditiveReduction(Reduction, ABC):
    """Reduction that adds the contributions of all edges of a row."""

    def init(self, dtype: torch.dtype) -> int | float:
        return 0

    def update(
        self, acc: Tensor, contributions: Tensor, row: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        return acc.index_add(1, row, contributions), arg


class ExtremumReduction(Reduction, ABC):
    """
    Reduction that keeps, for each output element, the most extreme contribution of the row, and
    records which edge produced it. When several edges reach the extremum, the first one wins.
    NaN contributions are skipped.
    """

    produces_arg = True
    _scatter_reduce: str

    @staticmethod
    @abstractmethod
    def _improves(candidate: Tensor, current: Tensor) -> Tensor:
        """Strict comparison telling where ``candidate`` should replace ``current``."""

    def update(
        self, acc: Tensor, contributions: Tensor, row: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        # NaN never compares as an improvement, so it can neither become the extremum nor win
        contributions = contributions.masked_fill(
            contributions.isnan(), self.init(contributions.dtype)
        )
        index = expand_index(row, contributions)
        result = acc.scatter_reduce(
            1, index, contributions, reduce=self._scatter_reduce, include_self=True
        )

        if arg is not None:
            n_edges = contributions.shape[1]
            is_extremum = contributions == result.gather(1, index)
            wins = is_extremum & self._improves(contributions, acc.gather(1, index))
            candidates = torch.where(wins, edge_ids(n_edges, contributions.device), n_edges)
            # The smallest edge index among the winners is the first one reaching the extremum
            arg = arg.scatter_reduce(1, index, candidates, reduce="amin", include_self=True)

        return result, arg

    def finalize(
        self, acc: Tensor, count: Tensor, arg: Tensor | None = None
    ) -> tuple[Tensor, Tensor | None]:
        is_empty = (count == 0).view(1, -1, 1)
        return acc.masked_fill(is_empty, 0), arg

    def route(self, edge_grad: Tensor, row: Tensor, arg: Tensor | None) -> Tensor:
        if arg is None:
            raise ValueError(
                f"Parameter `arg_out` is required to differentiate through reduction {self}."
            )

        winners = arg.index_select(1, row) == edge_ids(row.numel(), arg.device)
        return edge_grad.masked_fill(~winners, 0)
