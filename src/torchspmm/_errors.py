from collections.abc import Iterable

from torch import Tensor


class DeviceMismatchError(RuntimeError):
    def __init__(self, name: str, tensor: Tensor):
        super().__init__(
            f"Parameter `{name}` should be a CPU tensor. Found `{name}.device = {tensor.device}`."
        )


class ShapeMismatchError(ValueError):
    pass


class UnknownReductionError(ValueError):
    def __init__(self, reduce: str, accepted: Iterable[str]):
        accepted_str = ", ".join(f'"{name}"' for name in accepted)
        super().__init__(
            f"Parameter `reduce` should be one of {accepted_str}. Found `reduce = {reduce!r}`."
        )
