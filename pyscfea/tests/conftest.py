# 文件: pyscfea/tests/conftest.py
"""
测试公用夹具
"""
import numpy as np
import pytest

from pyscfea.core.mesh import Mesh
from pyscfea.core.node import Node


def make_nodes(coords):
    return [Node(i, *xyz) for i, xyz in enumerate(coords)]


UNIT_HEX_COORDS = [
    [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
    [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
]

UNIT_PRISM_COORDS = [
    [0, 0, 0], [1, 0, 0], [0, 1, 0],
    [0, 0, 1], [1, 0, 1], [0, 1, 1],
]


@pytest.fixture
def line_nodes():
    return make_nodes([[0, 0, 0], [1, 0, 0]])


@pytest.fixture
def triangle_nodes():
    return make_nodes([[0, 0, 0], [1, 0, 0], [0, 1, 0]])


@pytest.fixture
def tetra_nodes():
    return make_nodes([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]])


@pytest.fixture
def hex_nodes():
    return make_nodes(UNIT_HEX_COORDS)


@pytest.fixture
def prism_nodes():
    return make_nodes(UNIT_PRISM_COORDS)


def build_chain_mesh(n_elements, length=None):
    """
    n 个等长线单元组成的一维链 (物理组 'wire')，节点 i 位于 x_i。
    端点没有点单元，边界条件通过节点集合直接给出。
    """
    length = float(n_elements if length is None else length)
    x = np.linspace(0.0, length, n_elements + 1)
    mesh = Mesh()
    for i, xi in enumerate(x):
        mesh.add_node(i, xi)
    for e in range(n_elements):
        mesh.add_element('line', [e, e + 1], 'wire')
    return mesh


@pytest.fixture
def chain_mesh():
    return build_chain_mesh


@pytest.fixture
def two_tetra_mesh():
    """两个共享一个面的四面体 (节点 1, 2, 3 共享)。"""
    coords = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 1, 1]]
    return Mesh.from_arrays(coords, [[0, 1, 2, 3], [1, 2, 3, 4]], 'tetrahedron', 'body')


# 两个单位六面体沿 x 方向排列成 2×1×1 的长条，
# x=0 与 x=2 两端各由两个三角形组成物理面 'left' / 'right'；
# 另含一个未命名物理组的线单元和一个点单元，读入时应被跳过。
BAR_MSH = """\
$MeshFormat
2.2 0 8
$EndMeshFormat
$PhysicalNames
3
2 1 "left"
2 2 "right"
3 3 "bar"
$EndPhysicalNames
$Nodes
12
1 0 0 0
2 0 1 0
3 0 1 1
4 0 0 1
5 1 0 0
6 1 1 0
7 1 1 1
8 1 0 1
9 2 0 0
10 2 1 0
11 2 1 1
12 2 0 1
$EndNodes
$Elements
8
1 15 2 0 1 1
2 1 2 99 1 1 5
3 2 2 1 1 1 2 3
4 2 2 1 1 1 3 4
5 2 2 2 2 9 10 11
6 2 2 2 2 9 11 12
7 5 2 3 1 1 5 6 2 4 8 7 3
8 5 2 3 1 5 9 10 6 8 12 11 7
$EndElements
"""


@pytest.fixture
def bar_msh_text():
    return BAR_MSH


@pytest.fixture
def bar_msh_file(tmp_path):
    path = tmp_path / "bar.msh"
    path.write_text(BAR_MSH)
    return path


@pytest.fixture
def material_file(tmp_path):
    path = tmp_path / "materials.txt"
    path.write_text("# conductivity per physical group\nbar 2.0\n")
    return path


# 一维导线：三段线单元，两端为具名物理点
WIRE_MSH = """$MeshFormat
2.2 0 8
$EndMeshFormat
$PhysicalNames
3
0 1 "left"
0 2 "right"
1 3 "wire"
$EndPhysicalNames
$Nodes
4
1 0 0 0
2 1 0 0
3 2 0 0
4 3 0 0
$EndNodes
$Elements
5
1 15 2 1 1 1
2 15 2 2 2 4
3 1 2 3 1 1 2
4 1 2 3 1 2 3
5 1 2 3 1 3 4
$EndElements
"""


@pytest.fixture
def wire_msh_file(tmp_path):
    path = tmp_path / "wire.msh"
    path.write_text(WIRE_MSH)
    return path
