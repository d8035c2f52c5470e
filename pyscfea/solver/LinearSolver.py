import logging
from dataclasses import dataclass

import numpy as np
from scipy.sparse.linalg import spsolve

from ..core.exceptions import DimensionMismatchError, SingularMatrixError
from .sparse_matrix import SparseMatrix

logger = logging.getLogger(__name__)


@dataclass
class SolveResult:
    """
    线性求解结果

    直接法 converged 恒为 True，iterations 为 0。
    迭代法未收敛时 x 为最后一轮的近似解，converged=False。
    """
    x: np.ndarray
    method: str
    converged: bool
    iterations: int = 0
    residual: float = 0.0


class LinearSolver:
    """
    线性方程组求解器
    包含：
    1. Gauss-Seidel 迭代 (压缩行格式，逐行原地更新)
    2. 直接法 (scipy 稀疏 LU)
    """

    METHODS = ('gauss_seidel', 'direct')

    def __init__(self, K_global, F_global):
        """
        Args:
            K_global: 已施加边界条件的全局矩阵 (SparseMatrix)
            F_global: 右端项 (numpy array)
        """
        self.K = K_global
        self.F = np.asarray(F_global, dtype=np.float64)
        if self.K.shape[0] != self.K.shape[1] or self.K.shape[0] != len(self.F):
            raise DimensionMismatchError(
                f"System matrix {self.K.shape} and right-hand side ({len(self.F)},) do not match"
            )

    def solve(self, method='gauss_seidel', tol=1e-10, max_iter=1000):
        """
        执行求解

        Returns:
            SolveResult

        Raises:
            ValueError: 未知求解方法
            SingularMatrixError: 零主元 / 奇异矩阵
        """
        logger.info("Solving linear system (Method: %s, DOFs: %d)", method, len(self.F))

        if method == 'gauss_seidel':
            K_csr = self.K.to_csr() if isinstance(self.K, SparseMatrix) else self.K
            x, iterations, converged, residual = K_csr.gauss_seidel(self.F, tol=tol, max_iter=max_iter)
            if converged:
                logger.info("Gauss-Seidel converged in %d iterations (max |dx| = %.3e)", iterations, residual)
            else:
                logger.warning(
                    "Gauss-Seidel did not converge after %d iterations (max |dx| = %.3e)",
                    iterations, residual,
                )
            return SolveResult(x, method, converged, iterations, float(residual))

        elif method == 'direct':
            K_csc = self.K.to_scipy().tocsc()
            diag = K_csc.diagonal()
            zero_rows = np.flatnonzero(np.abs(diag) < 1e-10)
            if len(zero_rows):
                raise SingularMatrixError(int(zero_rows[0]))
            try:
                x = np.atleast_1d(spsolve(K_csc, self.F))
            except RuntimeError as e:
                raise SingularMatrixError(-1, f"Direct solve failed: {e}") from e
            if not np.all(np.isfinite(x)):
                raise SingularMatrixError(-1, "Direct solve failed: system matrix is singular")
            logger.info("Direct solve finished.")
            return SolveResult(x, method, True)

        else:
            raise ValueError(f"Unknown solver method: {method}")
