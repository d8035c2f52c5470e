import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from ..core.exceptions import MissingMaterialPropertyError
from ..core.material import MaterialProperties
from .sparse_matrix import SparseMatrix

logger = logging.getLogger(__name__)


class GlobalAssembler:
    """
    全局电导 (刚度) 矩阵组装器
    使用 COO (Coordinate) 三元组一次性构建稀疏矩阵
    """

    def __init__(self, mesh, materials, default_conductivity=None, workers=1):
        """
        Args:
            mesh (Mesh): 网格对象
            materials (dict): 物理组名称 -> MaterialProperties
            default_conductivity (float | None): 未配置材料的物理组所用的电导率；
                None 表示不允许回退，直接报错
            workers (int): 计算单元矩阵的线程数，1 表示串行
        """
        self.mesh = mesh
        self.materials = materials
        self.default_conductivity = default_conductivity
        self.workers = max(1, int(workers))
        self.total_dof = mesh.n_nodes  # 每个节点 1 个自由度 (电位)

    def resolve_conductivity(self, element):
        """
        按物理组查找单元电导率。

        Raises:
            MissingMaterialPropertyError: 物理组没有材料属性且未配置默认值
        """
        group = element.physical_group
        props = self.materials.get(group)
        if props is None:
            if self.default_conductivity is None:
                raise MissingMaterialPropertyError(group)
            return self.default_conductivity
        if not isinstance(props, MaterialProperties):
            props = MaterialProperties(dict(props), name=group)
        return props.conductivity

    def _element_matrix(self, element, conductivity):
        return element.stiffness_matrix(conductivity)

    def assemble(self):
        """
        执行组装过程

        Returns:
            K_global (SparseMatrix): N×N 全局电导矩阵
            F_global (np.ndarray): 长度 N 的零初始化载荷向量
        """
        elements = self.mesh.domain_elements()
        num_elem = len(elements)
        logger.info("Assembling global matrix: %d elements, %d DOFs", num_elem, self.total_dof)

        # 1. 先解析全部电导率，缺失材料在计算之前就报错
        conductivities = [self.resolve_conductivity(e) for e in elements]
        fallback_groups = {
            e.physical_group for e in elements if e.physical_group not in self.materials
        }
        if fallback_groups:
            logger.warning(
                "Using default conductivity %g for groups without material: %s",
                self.default_conductivity, sorted(map(str, fallback_groups)),
            )

        # 2. 计算单元矩阵 (各单元相互独立，可并行)
        if self.workers > 1 and num_elem > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                element_matrices = list(pool.map(self._element_matrix, elements, conductivities))
        else:
            element_matrices = [self._element_matrix(e, c) for e, c in zip(elements, conductivities)]

        # 3. 预分配三元组数组
        entries = [Ke.size for Ke in element_matrices]
        total_entries = int(sum(entries))
        rows = np.zeros(total_entries, dtype=np.int64)
        cols = np.zeros(total_entries, dtype=np.int64)
        data = np.zeros(total_entries, dtype=np.float64)

        # 4. 串行散布：相同 (i, j) 的贡献在压缩时累加，不会覆盖
        ptr = 0
        for elem, Ke in zip(elements, element_matrices):
            dofs = elem.get_node_indices()
            # indexing='ij' 确保顺序与 Ke.ravel() 匹配
            r_grid, c_grid = np.meshgrid(dofs, dofs, indexing='ij')
            end_ptr = ptr + Ke.size
            rows[ptr:end_ptr] = r_grid.ravel()
            cols[ptr:end_ptr] = c_grid.ravel()
            data[ptr:end_ptr] = Ke.ravel()
            ptr = end_ptr

        K_global = SparseMatrix.from_triplets(rows, cols, data, shape=(self.total_dof, self.total_dof))
        F_global = np.zeros(self.total_dof)

        logger.info("Global matrix assembled (nnz = %d)", K_global.nnz)
        return K_global, F_global
