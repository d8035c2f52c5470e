# 文件: pyscfea/solver/sparse_matrix.py
"""
稀疏矩阵

SparseMatrix: 按 (row, col) 寻址的可修改稀疏矩阵，按行存储为字典，
    缺省元素为 0，写入精确的 0 会删除该元素。组装阶段用三元组
    (COO) 一次性构建，边界条件阶段按行修改。
CSRMatrix: 压缩行格式 (values / column_indices / row_pointers)，
    用于反复的矩阵-向量乘与 Gauss-Seidel 迭代。
"""

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

from ..core.exceptions import DimensionMismatchError, SingularMatrixError

# 对角元绝对值低于该值视为零主元
ZERO_PIVOT = 1e-10


class SparseMatrix:
    """
    键寻址稀疏矩阵

    Example:
        K = SparseMatrix(3, 3)
        K[0, 0] = 2.0
        K.add(0, 0, 1.0)    # 累加
        K[0, 0]             # 3.0
        K[1, 2]             # 0.0 (未存储)
        K_csr = K.to_csr()
    """

    def __init__(self, rows, cols=None):
        cols = rows if cols is None else cols
        if rows < 0 or cols < 0:
            raise ValueError(f"Invalid matrix shape ({rows}, {cols})")
        self.shape = (int(rows), int(cols))
        self._rows = [dict() for _ in range(self.shape[0])]

    @property
    def rows(self):
        return self.shape[0]

    @property
    def cols(self):
        return self.shape[1]

    @property
    def nnz(self):
        return sum(len(r) for r in self._rows)

    def _check_index(self, i, j):
        if not (0 <= i < self.shape[0] and 0 <= j < self.shape[1]):
            raise IndexError(f"Index ({i}, {j}) out of range for matrix of shape {self.shape}")

    def __getitem__(self, key):
        i, j = key
        self._check_index(i, j)
        return self._rows[i].get(j, 0.0)

    def __setitem__(self, key, value):
        i, j = key
        self._check_index(i, j)
        value = float(value)
        if value != 0.0:
            self._rows[i][j] = value
        else:
            self._rows[i].pop(j, None)

    def add(self, i, j, value):
        """累加到 (i, j)，装配时使用；结果恰为 0 时删除该元素。"""
        self[i, j] = self[i, j] + value

    def row(self, i):
        """返回第 i 行非零元素 {col: value} 的副本。"""
        self._check_index(i, 0 if self.shape[1] else -1)
        return dict(self._rows[i])

    def set_row(self, i, entries):
        """用 {col: value} 整体替换第 i 行。"""
        self._check_index(i, 0 if self.shape[1] else -1)
        new_row = {}
        for j, v in entries.items():
            self._check_index(i, j)
            if v != 0.0:
                new_row[int(j)] = float(v)
        self._rows[i] = new_row

    def row_sums(self):
        return np.array([sum(r.values()) for r in self._rows])

    def is_symmetric(self, tol=1e-10):
        if self.shape[0] != self.shape[1]:
            return False
        for i, r in enumerate(self._rows):
            for j, v in r.items():
                if abs(v - self._rows[j].get(i, 0.0)) > tol:
                    return False
        return True

    @classmethod
    def from_triplets(cls, rows, cols, data, shape):
        """
        由 (row, col, value) 三元组构建矩阵。

        使用 coo_matrix 自动累加重复索引 (有限元装配的求和语义)，
        再压缩为 CSR 后逐行写入；累加结果恰为 0 的元素不存储。
        """
        K_coo = coo_matrix((data, (rows, cols)), shape=shape)
        K_csr = K_coo.tocsr()
        K_csr.sum_duplicates()

        matrix = cls(*shape)
        indptr, indices, values = K_csr.indptr, K_csr.indices, K_csr.data
        for i in range(shape[0]):
            start, end = indptr[i], indptr[i + 1]
            matrix._rows[i] = {
                int(j): float(v) for j, v in zip(indices[start:end], values[start:end]) if v != 0.0
            }
        return matrix

    @classmethod
    def from_dense(cls, array):
        array = np.asarray(array, dtype=float)
        matrix = cls(*array.shape)
        for i, j in zip(*np.nonzero(array)):
            matrix._rows[i][int(j)] = float(array[i, j])
        return matrix

    def to_csr(self):
        """转换为压缩行格式，每行列索引升序。"""
        row_pointers = np.zeros(self.shape[0] + 1, dtype=np.int64)
        column_indices = []
        values = []
        for i, r in enumerate(self._rows):
            for j in sorted(r):
                column_indices.append(j)
                values.append(r[j])
            row_pointers[i + 1] = len(values)
        return CSRMatrix(
            np.array(values, dtype=np.float64),
            np.array(column_indices, dtype=np.int64),
            row_pointers,
            self.shape,
        )

    def to_scipy(self):
        return self.to_csr().to_scipy()

    def to_dense(self):
        dense = np.zeros(self.shape)
        for i, r in enumerate(self._rows):
            for j, v in r.items():
                dense[i, j] = v
        return dense

    def __repr__(self):
        return f"SparseMatrix(shape={self.shape}, nnz={self.nnz})"


class CSRMatrix:
    """
    压缩行 (CSR) 稀疏矩阵

    Attributes:
        values: 非零元素值 (nnz,)
        column_indices: 对应列索引 (nnz,)，每行内升序
        row_pointers: 每行在 values 中的起始位置 (rows+1,)
    """

    def __init__(self, values, column_indices, row_pointers, shape):
        self.values = np.asarray(values, dtype=np.float64)
        self.column_indices = np.asarray(column_indices, dtype=np.int64)
        self.row_pointers = np.asarray(row_pointers, dtype=np.int64)
        self.shape = (int(shape[0]), int(shape[1]))

        if len(self.row_pointers) != self.shape[0] + 1:
            raise DimensionMismatchError(
                f"row_pointers length {len(self.row_pointers)} != rows + 1 ({self.shape[0] + 1})"
            )
        if len(self.values) != len(self.column_indices) or self.row_pointers[-1] != len(self.values):
            raise DimensionMismatchError("values / column_indices / row_pointers are inconsistent")

    @property
    def nnz(self):
        return len(self.values)

    def dot(self, vector):
        """
        矩阵-向量乘 y_i = Σ_j a_ij x_j

        Raises:
            DimensionMismatchError: 向量长度不等于列数
        """
        x = np.asarray(vector, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.shape[1]:
            raise DimensionMismatchError(
                f"Vector length {x.shape} does not match matrix columns {self.shape[1]}"
            )
        row_ids = np.repeat(np.arange(self.shape[0]), np.diff(self.row_pointers))
        return np.bincount(
            row_ids, weights=self.values * x[self.column_indices], minlength=self.shape[0]
        ).astype(np.float64)

    __matmul__ = dot

    def diagonal(self):
        diag = np.zeros(min(self.shape))
        for i in range(len(diag)):
            start, end = self.row_pointers[i], self.row_pointers[i + 1]
            cols = self.column_indices[start:end]
            hit = np.searchsorted(cols, i)
            if hit < len(cols) and cols[hit] == i:
                diag[i] = self.values[start + hit]
        return diag

    def gauss_seidel(self, rhs, x0=None, tol=1e-10, max_iter=1000):
        """
        Gauss-Seidel 迭代求解 A x = b

            x_i ← (b_i − Σ_{j≠i} a_ij x_j) / a_ii

        逐行原地更新，每轮扫描全部行；初值默认取右端项本身。
        收敛判据：本轮各行 |Δx_i| 的最大值 < tol；最多 max_iter 轮。
        不做主元选取或行重排。

        Args:
            rhs: 右端项 (rows,)
            x0: 初值，默认为 rhs 的副本
            tol: 收敛容差
            max_iter: 最大迭代轮数

        Returns:
            x (np.ndarray): 解向量 (未收敛时为最后一轮的结果)
            iterations (int): 实际迭代轮数
            converged (bool): 是否收敛
            max_delta (float): 最后一轮的最大更新量

        Raises:
            DimensionMismatchError: 非方阵或向量长度不符
            SingularMatrixError: 存在 |a_ii| < 1e-10 的行
        """
        n = self.shape[0]
        if self.shape[0] != self.shape[1]:
            raise DimensionMismatchError(f"Gauss-Seidel requires a square matrix, got {self.shape}")
        b = np.asarray(rhs, dtype=np.float64)
        if b.ndim != 1 or b.shape[0] != n:
            raise DimensionMismatchError(f"Right-hand side length {b.shape} does not match matrix rows {n}")

        x = b.copy() if x0 is None else np.array(x0, dtype=np.float64)
        if x.shape != (n,):
            raise DimensionMismatchError(f"Initial guess length {x.shape} does not match matrix rows {n}")

        diag = self.diagonal()
        zero_rows = np.flatnonzero(np.abs(diag) < ZERO_PIVOT)
        if len(zero_rows):
            raise SingularMatrixError(int(zero_rows[0]))

        rp, ci, vals = self.row_pointers, self.column_indices, self.values
        max_delta = np.inf
        iterations = 0
        for iterations in range(1, max_iter + 1):
            max_delta = 0.0
            for i in range(n):
                start, end = rp[i], rp[i + 1]
                # 行内积包含对角项，减去即得 Σ_{j≠i}
                off_diag = vals[start:end] @ x[ci[start:end]] - diag[i] * x[i]
                new_value = (b[i] - off_diag) / diag[i]
                delta = abs(new_value - x[i])
                if delta > max_delta:
                    max_delta = delta
                x[i] = new_value
            if max_delta < tol:
                return x, iterations, True, max_delta

        return x, iterations, False, max_delta

    def to_scipy(self):
        return csr_matrix((self.values, self.column_indices, self.row_pointers), shape=self.shape)

    def to_dense(self):
        return self.to_scipy().toarray()

    def __repr__(self):
        return f"CSRMatrix(shape={self.shape}, nnz={self.nnz})"
