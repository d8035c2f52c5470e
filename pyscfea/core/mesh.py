import numpy as np

from .element import create_element
from .exceptions import ConstructionError
from .node import Node


class Mesh:
    """
    有限元网格聚合对象。

    持有：
        nodes               节点列表，node.id 与列表下标一致 (0-based)
        elements            单元列表 (读入顺序)
        physical_groups     物理组名称 -> 单元列表，在添加单元时同步建立
        physical_names      网格文件中的物理组编号 -> 名称
        point_groups        物理组名称 -> 节点 ID 集合 (0 维点单元，只作边界条件载体)
        boundary_conditions 已解析节点集合的边界条件列表
    """

    def __init__(self):
        self.nodes = []
        self.elements = []
        self.physical_groups = {}
        self.physical_names = {}
        self.point_groups = {}
        self.boundary_conditions = []

    @property
    def n_nodes(self):
        return len(self.nodes)

    @property
    def n_elements(self):
        return len(self.elements)

    @classmethod
    def from_arrays(cls, coords, connectivity, element_type, physical_groups=None):
        """
        由坐标数组和连接数组直接构建单一类型的网格。

        Args:
            coords (array_like): (N, 1..3) 节点坐标
            connectivity (array_like): (M, nodes_per_element) 0-based 节点索引
            element_type (str | ElementType): 单元类型
            physical_groups (list[str] | str | None): 每个单元的物理组名，
                单个字符串表示全部单元同组，默认 'domain'
        """
        mesh = cls()
        coords = np.asarray(coords, dtype=float)
        if coords.ndim == 1:
            coords = coords.reshape(-1, 1)
        for i, xyz in enumerate(coords):
            mesh.add_node(i, *xyz)

        connectivity = np.atleast_2d(np.asarray(connectivity, dtype=int))
        if physical_groups is None:
            physical_groups = 'domain'
        if isinstance(physical_groups, str):
            physical_groups = [physical_groups] * len(connectivity)

        for eid, (conn, group) in enumerate(zip(connectivity, physical_groups)):
            mesh.add_element(element_type, conn, group, element_id=eid)
        return mesh

    def add_node(self, node_id, x, y=0.0, z=0.0):
        """追加节点；ID 必须等于当前节点数 (稠密编号)。"""
        if node_id != len(self.nodes):
            raise ConstructionError(
                f"Node ids must be dense and 0-based: expected {len(self.nodes)}, got {node_id}"
            )
        node = Node(node_id, x, y, z)
        self.nodes.append(node)
        return node

    def add_element(self, element_type, node_ids, physical_group, element_id=None):
        """按节点索引创建单元并登记到物理组索引中。"""
        nodes = [self._get_node(i, node_ids) for i in node_ids]
        if element_id is None:
            element_id = len(self.elements)
        element = create_element(element_type, element_id, nodes, physical_group)
        self.elements.append(element)
        self.physical_groups.setdefault(physical_group, []).append(element)
        return element

    def add_point(self, node_id, physical_group):
        """把单个节点登记到点物理组 (如一维网格两端的边界点)。"""
        node = self._get_node(node_id, [node_id])
        self.point_groups.setdefault(physical_group, set()).add(node.id)
        return node

    def _get_node(self, i, node_ids):
        i = int(i)
        if not 0 <= i < len(self.nodes):
            raise ConstructionError(f"Element references unknown node id {i} in {list(node_ids)}")
        return self.nodes[i]

    @property
    def domain_dimension(self):
        """网格中单元的最高拓扑维数 (空网格为 0)。"""
        return max((e.dim for e in self.elements), default=0)

    def domain_elements(self):
        """
        参与组装的区域单元：拓扑维数等于 domain_dimension 的单元。

        低维单元 (如体网格上的边界三角形) 只作为边界条件的载体。
        """
        dim = self.domain_dimension
        return [e for e in self.elements if e.dim == dim]

    def get_elements_by_physical_group(self, name):
        return list(self.physical_groups.get(name, []))

    def get_physical_group_nodes(self, name):
        """物理组内全部单元节点 (含点物理组节点) 的并集 (升序的全局索引数组)。"""
        ids = set(self.point_groups.get(name, ()))
        for element in self.physical_groups.get(name, []):
            ids.update(n.id for n in element.nodes)
        return np.array(sorted(ids), dtype=int)

    def get_coordinates(self):
        """(N, 3) 节点坐标矩阵"""
        if not self.nodes:
            return np.zeros((0, 3))
        return np.array([n.coords for n in self.nodes])

    def physical_group_ids(self):
        """
        物理组名称 -> 整数编号。

        优先使用网格文件中的物理组编号；内存中构建的网格按首次出现顺序从 1 开始编号。
        """
        ids = {name: tag for tag, name in self.physical_names.items()}
        next_id = max(ids.values(), default=0) + 1
        for name in self.physical_groups:
            if name not in ids:
                ids[name] = next_id
                next_id += 1
        return ids

    def clear(self):
        self.nodes.clear()
        self.elements.clear()
        self.physical_groups.clear()
        self.physical_names.clear()
        self.point_groups.clear()
        self.boundary_conditions.clear()

    def __repr__(self):
        return f"Mesh(nodes={self.n_nodes}, elements={self.n_elements}, groups={list(self.physical_groups)})"
