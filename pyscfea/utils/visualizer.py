import logging
from pathlib import Path

import numpy as np
import pyvista as pv

from ..core.element import ElementType

logger = logging.getLogger(__name__)


class FEMVisualizer:
    """
    有限元结果导出辅助类。

    主要负责：
    - 将网格节点／单元转换为 PyVista 非结构化网格
    - 绑定电位、物理组、电流密度等结果字段
    - 写出 VTK 文件
    """

    # 单元类型 -> VTK 单元类型编号
    VTK_CELL_TYPES = {
        ElementType.LINE: 3,         # VTK_LINE
        ElementType.TRIANGLE: 5,     # VTK_TRIANGLE
        ElementType.TETRAHEDRON: 10,  # VTK_TETRA
        ElementType.HEXAHEDRON: 12,  # VTK_HEXAHEDRON
        ElementType.PRISM: 13,       # VTK_WEDGE
    }

    SUPPORTED_SUFFIXES = ('.vtk', '.vtu')

    @classmethod
    def build_grid(cls, mesh, potential=None, current_density=None):
        """
        将网格转换为 PyVista 非结构化网格

        Args:
            mesh (Mesh): 网格
            potential (np.ndarray | None): 节点电位 (N,)
            current_density (np.ndarray | None): 单元电流密度 (M×3)

        Returns:
            pv.UnstructuredGrid: 已附加结果字段的网格对象。
        """
        # 1. 节点坐标
        node_coords = mesh.get_coordinates()

        # 2. 单元连接关系：[n, i0, i1, ..., n, j0, ...]
        cells = []
        cell_types = []
        for elem in mesh.elements:
            indices = elem.get_node_indices()
            cells.append(len(indices))
            cells.extend(indices.tolist())
            cell_types.append(cls.VTK_CELL_TYPES[elem.type])

        # 3. 创建 PyVista 网格
        grid = pv.UnstructuredGrid(
            np.array(cells, dtype=np.int64),
            np.array(cell_types, dtype=np.uint8),
            node_coords,
        )

        # 4. 绑定结果
        group_ids = mesh.physical_group_ids()
        grid.cell_data["physical_group"] = np.array(
            [group_ids[e.physical_group] for e in mesh.elements], dtype=np.int32
        )

        if potential is not None:
            potential = np.asarray(potential, dtype=float)
            if potential.shape != (mesh.n_nodes,):
                raise ValueError(
                    f"Potential field has shape {potential.shape}, expected ({mesh.n_nodes},)"
                )
            grid.point_data["potential"] = potential

        if current_density is not None:
            current_density = np.asarray(current_density, dtype=float)
            if current_density.shape != (mesh.n_elements, 3):
                raise ValueError(
                    f"Current density has shape {current_density.shape}, expected ({mesh.n_elements}, 3)"
                )
            grid.cell_data["current_density"] = current_density

        return grid

    @classmethod
    def export(cls, path, mesh, potential, current_density=None):
        """
        写出结果文件，格式由扩展名决定 (.vtk 旧版格式 / .vtu XML 格式)。

        Returns:
            pv.UnstructuredGrid: 已写出的网格对象
        """
        path = Path(path)
        if path.suffix.lower() not in cls.SUPPORTED_SUFFIXES:
            raise ValueError(
                f"Unsupported output format '{path.suffix}', expected one of {cls.SUPPORTED_SUFFIXES}"
            )
        grid = cls.build_grid(mesh, potential, current_density)
        grid.save(str(path))
        logger.info("Results written to %s", path)
        return grid

    @staticmethod
    def get_scalar_range(grid, scalar_name):
        """
        获取网格中指定点标量字段的取值范围。

        Args:
            grid: PyVista 网格对象
            scalar_name (str): 标量数据名称
        Returns:
            tuple[float, float]: (min_value, max_value)。若字段不存在则返回 (None, None)。
        """
        if scalar_name not in grid.point_data:
            return None, None

        data = grid.point_data[scalar_name]
        return float(np.min(data)), float(np.max(data))
