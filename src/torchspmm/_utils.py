import torch
from torch import Tensor


def degree(rowptr: Tensor) -> Tensor:
    """Number of edges of each row of a CSR adjacency, as an int64 vector of length ``M``."""

    return rowptr.long().diff()


def rowptr_to_row(rowptr: Tensor) -> Tensor:
    """
    Expands ``rowptr`` into the edge-list form: the returned vector has one entry per edge, giving
    the row from which this edge originates.
    """

    rowptr = rowptr.long()
    n_rows = rowptr.numel() - 1
    n_edges = int(rowptr[-1])
    rows = torch.arange(n_rows, device=rowptr.device)
    return rows.repeat_interleave(degree(rowptr), output_size=n_edges)


def edge_ids(n_edges: int, device: torch.device) -> Tensor:
    """Edge indices shaped ``[1, E, 1]`` so that they broadcast against ``[B, E, K]`` tensors."""

    return torch.arange(n_edges, device=device).view(1, -1, 1)


def expand_index(index: Tensor, like: Tensor) -> Tensor:
    """
    Broadcasts a vector of edge targets of length ``E`` to the ``[B, E, K]`` shape of ``like``, as
    required by ``scatter_reduce`` and ``gather`` along dimension 1.
    """

    return index.view(1, -1, 1).expand_as(like)
