# 文件路径: pyscfea/solver/boundary_conditions.py
"""
边界条件模块

Dirichlet: 行消元法，直接给定节点电位 (x_n = value)。
Neumann:   在载荷向量上累加给定的节点电流。

边界条件作用于物理组：先由 resolve(mesh) 把物理组解析为全局节点索引集合，
再由 apply(matrix, rhs) 修改全局方程组。
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum

import numpy as np

from ..core.exceptions import BoundaryConditionError

logger = logging.getLogger(__name__)


class BoundaryKind(Enum):
    DIRICHLET = 'dirichlet'
    NEUMANN = 'neumann'


class BoundaryCondition(ABC):
    """
    边界条件抽象基类

    Attributes:
        physical_group (str | None): 作用的物理组名称；None 表示直接给定节点集合
        value (float): 给定值 (电位或节点电流)
        node_indices (np.ndarray | None): 解析后的全局节点索引，未解析时为 None
    """
    kind = None

    def __init__(self, physical_group, value, node_indices=None):
        self.physical_group = physical_group
        self.value = float(value)
        self.node_indices = None
        if node_indices is not None:
            self.node_indices = np.unique(np.asarray(node_indices, dtype=int))
        elif physical_group is None:
            raise BoundaryConditionError("A boundary condition needs a physical group or node indices")

    @classmethod
    def on_nodes(cls, node_indices, value):
        """直接作用于给定全局节点索引的边界条件 (无需物理组)。"""
        return cls(None, value, node_indices=node_indices)

    @property
    def is_resolved(self):
        return self.node_indices is not None

    def resolve(self, mesh):
        """
        扫描物理组内全部单元 (及点物理组)，将其节点并集作为作用节点集合。
        直接给定节点集合的条件保持原样。

        Raises:
            BoundaryConditionError: 物理组中没有任何单元，或节点索引超出网格
        """
        if self.physical_group is None:
            if len(self.node_indices) and (self.node_indices.min() < 0 or self.node_indices.max() >= mesh.n_nodes):
                raise BoundaryConditionError(
                    f"Node indices {self.node_indices.tolist()} outside mesh with {mesh.n_nodes} nodes"
                )
            return self.node_indices

        nodes = mesh.get_physical_group_nodes(self.physical_group)
        if len(nodes) == 0:
            raise BoundaryConditionError(
                f"{self.kind.value.capitalize()} condition references physical group "
                f"'{self.physical_group}' which has no elements"
            )
        self.node_indices = nodes
        logger.debug(
            "Resolved %s condition on '%s' to %d nodes",
            self.kind.value, self.physical_group, len(nodes),
        )
        return nodes

    def _check_resolved(self, size):
        if not self.is_resolved:
            raise BoundaryConditionError(
                f"{self.kind.value.capitalize()} condition on '{self.physical_group}' "
                f"must be resolved before it is applied"
            )
        if len(self.node_indices) and self.node_indices.max() >= size:
            raise BoundaryConditionError(
                f"Condition on '{self.physical_group}' references node "
                f"{int(self.node_indices.max())} outside a system of size {size}"
            )

    @abstractmethod
    def apply(self, matrix, rhs):
        """原地修改全局矩阵 (SparseMatrix) 与右端项。"""

    def __repr__(self):
        n = None if self.node_indices is None else len(self.node_indices)
        return f"{type(self).__name__}(group={self.physical_group!r}, value={self.value}, nodes={n})"


class DirichletBoundaryCondition(BoundaryCondition):
    """
    给定电位边界条件 (行消元法)

    对每个节点 n：清零第 n 行的非对角元，对角元置 1，rhs[n] = value。
    第 n 列其余行中的耦合项保留，因此矩阵不再对称。
    多个条件作用于同一节点时，后施加者生效。
    """
    kind = BoundaryKind.DIRICHLET

    def apply(self, matrix, rhs):
        self._check_resolved(len(rhs))
        for n in self.node_indices:
            n = int(n)
            matrix.set_row(n, {n: 1.0})
            rhs[n] = self.value
        logger.debug("Dirichlet %s = %g on %d nodes", self.physical_group, self.value, len(self.node_indices))


class NeumannBoundaryCondition(BoundaryCondition):
    """
    给定节点电流边界条件：rhs[n] += value，矩阵不变。
    value = 0 即绝缘边界 (自然边界条件)。
    """
    kind = BoundaryKind.NEUMANN

    def apply(self, matrix, rhs):
        self._check_resolved(len(rhs))
        np.add.at(rhs, self.node_indices, self.value)
        logger.debug("Neumann %s = %g on %d nodes", self.physical_group, self.value, len(self.node_indices))


_KINDS = {
    BoundaryKind.DIRICHLET: DirichletBoundaryCondition,
    BoundaryKind.NEUMANN: NeumannBoundaryCondition,
}


def create_boundary_condition(kind, physical_group, value):
    """按类型名 ('dirichlet' / 'neumann') 创建边界条件。"""
    try:
        cls = _KINDS[BoundaryKind(str(kind).lower())]
    except ValueError:
        raise BoundaryConditionError(f"Unknown boundary condition kind '{kind}'") from None
    return cls(physical_group, value)
