"""Binding of residual functors to fixed residual and parameter arities."""

from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..math.jacobians import JacobianOptions, check_jacobian


class CostFunction:
    """A residual functor bound to its residual dimension and block sizes.

    This is the object registered with the solver side: it validates the
    parameter blocks it is handed, then returns the residual and one
    Jacobian matrix per block.
    """

    def __init__(self, functor):
        """Initialize cost function.

        Args:
            functor: Residual functor exposing ``compute_residual``,
                ``compute_jacobian``, ``residual_dimension`` and
                ``parameter_block_sizes``
        """
        self.functor = functor
        self._num_residuals = int(functor.residual_dimension())
        self._parameter_block_sizes = [int(s) for s in functor.parameter_block_sizes()]

    def num_residuals(self) -> int:
        """Get residual dimension."""
        return self._num_residuals

    def parameter_block_sizes(self) -> List[int]:
        """Get sizes of the parameter blocks, in evaluation order."""
        return list(self._parameter_block_sizes)

    def _check_blocks(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        if len(blocks) != len(self._parameter_block_sizes):
            raise ValueError(
                f"{type(self.functor).__name__} expects {len(self._parameter_block_sizes)} "
                f"parameter blocks, got {len(blocks)}"
            )

        checked = []
        for i, (block, size) in enumerate(zip(blocks, self._parameter_block_sizes)):
            block = np.atleast_1d(np.asarray(block, dtype=float))
            if block.shape != (size,):
                raise ValueError(
                    f"{type(self.functor).__name__}: parameter block {i} must have "
                    f"size {size}, got shape {block.shape}"
                )
            checked.append(block)
        return checked

    def evaluate(
        self,
        blocks: Sequence[np.ndarray],
        compute_jacobians: bool = True
    ) -> Tuple[np.ndarray, Optional[List[np.ndarray]]]:
        """Evaluate residual and, optionally, per-block Jacobians.

        Args:
            blocks: Current parameter blocks
            compute_jacobians: Whether to compute Jacobians

        Returns:
            Tuple of (residual, jacobians); jacobians is None when not requested
        """
        blocks = self._check_blocks(blocks)

        residual = np.asarray(self.functor.compute_residual(blocks), dtype=float)
        residual = residual.reshape(self._num_residuals)

        if not compute_jacobians:
            return residual, None

        jacobians = [
            np.asarray(J, dtype=float).reshape(self._num_residuals, size)
            for J, size in zip(self.functor.compute_jacobian(blocks), self._parameter_block_sizes)
        ]
        return residual, jacobians

    def check_gradient(
        self,
        blocks: Sequence[np.ndarray],
        options: Optional[JacobianOptions] = None,
        atol: float = 1e-5,
        rtol: float = 1e-5
    ) -> Tuple[bool, float]:
        """Compare the functor's Jacobians with finite differences.

        Returns:
            Tuple of (is_correct, max_error)
        """
        blocks = self._check_blocks(blocks)
        _, jacobians = self.evaluate(blocks)
        return check_jacobian(self.functor.compute_residual, jacobians, blocks, options, atol, rtol)

    def __repr__(self) -> str:
        return (
            f"CostFunction({type(self.functor).__name__}, residuals={self._num_residuals}, "
            f"blocks={self._parameter_block_sizes})"
        )
