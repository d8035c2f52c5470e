import numpy as np
import pytest

from pyscfea.core.exceptions import DegenerateElementError, MissingMaterialPropertyError
from pyscfea.core.material import MaterialProperties
from pyscfea.core.mesh import Mesh
from pyscfea.solver.assembler import GlobalAssembler
from pyscfea.tests.conftest import build_chain_mesh


class TestGlobalAssembler:
    """测试全局组装"""

    def test_chain_matrix(self):
        """三个单位线单元：三对角 [-1, 2, -1]，两端对角为 1"""
        mesh = build_chain_mesh(3)
        K, F = GlobalAssembler(mesh, {'wire': MaterialProperties.from_conductivity(1.0)}).assemble()
        expected = np.array([
            [1, -1, 0, 0],
            [-1, 2, -1, 0],
            [0, -1, 2, -1],
            [0, 0, -1, 1],
        ], dtype=float)
        assert np.allclose(K.to_dense(), expected)
        assert np.allclose(F, 0.0) and F.shape == (4,)

    def test_shared_face_accumulates(self, two_tetra_mesh):
        """共享节点的贡献相加而非覆盖"""
        materials = {'body': MaterialProperties.from_conductivity(2.0)}
        K, _ = GlobalAssembler(two_tetra_mesh, materials).assemble()

        expected = np.zeros((5, 5))
        for elem in two_tetra_mesh.elements:
            idx = elem.get_node_indices()
            expected[np.ix_(idx, idx)] += elem.stiffness_matrix(2.0)
        assert np.allclose(K.to_dense(), expected)

    def test_row_sums_vanish(self, two_tetra_mesh):
        K, _ = GlobalAssembler(two_tetra_mesh, {'body': {'conductivity': 3.0}}).assemble()
        assert np.allclose(K.row_sums(), 0.0, atol=1e-12)
        assert K.is_symmetric()

    def test_missing_material(self, two_tetra_mesh):
        with pytest.raises(MissingMaterialPropertyError) as excinfo:
            GlobalAssembler(two_tetra_mesh, {}).assemble()
        assert excinfo.value.group == 'body'
        assert 'body' in str(excinfo.value)

    def test_missing_conductivity_property(self, two_tetra_mesh):
        materials = {'body': MaterialProperties({'permittivity': 1.0}, name='body')}
        with pytest.raises(MissingMaterialPropertyError):
            GlobalAssembler(two_tetra_mesh, materials).assemble()

    def test_default_conductivity_fallback(self, two_tetra_mesh):
        K_default, _ = GlobalAssembler(two_tetra_mesh, {}, default_conductivity=1.0).assemble()
        K_explicit, _ = GlobalAssembler(two_tetra_mesh, {'body': MaterialProperties.from_conductivity(1.0)}).assemble()
        assert np.allclose(K_default.to_dense(), K_explicit.to_dense())

    def test_degenerate_element_aborts(self):
        mesh = Mesh.from_arrays(
            [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 1, 0]],
            [[0, 1, 2, 3], [0, 1, 2, 4]],
            'tetrahedron',
        )
        with pytest.raises(DegenerateElementError) as excinfo:
            GlobalAssembler(mesh, {'domain': MaterialProperties.from_conductivity(1.0)}).assemble()
        assert excinfo.value.element_id == 1

    def test_threaded_matches_serial(self):
        coords = [[x, y, z] for z in range(3) for y in range(3) for x in range(4)]
        connectivity = []
        for k in range(2):
            for j in range(2):
                for i in range(3):
                    n0 = i + 4 * j + 12 * k
                    connectivity.append([n0, n0 + 1, n0 + 5, n0 + 4, n0 + 12, n0 + 13, n0 + 17, n0 + 16])
        mesh = Mesh.from_arrays(coords, connectivity, 'hexahedron', 'block')
        materials = {'block': MaterialProperties.from_conductivity(1.5)}

        K_serial, _ = GlobalAssembler(mesh, materials).assemble()
        K_threaded, _ = GlobalAssembler(mesh, materials, workers=4).assemble()
        assert np.allclose(K_serial.to_dense(), K_threaded.to_dense(), atol=1e-12)
        assert np.allclose(K_serial.row_sums(), 0.0, atol=1e-12)

    def test_boundary_elements_not_assembled(self, bar_msh_text):
        """体网格上的边界三角形不参与组装，也不需要材料"""
        from pyscfea.utils.gmsh_reader import GmshParser

        mesh = GmshParser().parse_lines(bar_msh_text.splitlines())
        K, _ = GlobalAssembler(mesh, {'bar': MaterialProperties.from_conductivity(1.0)}).assemble()
        assert K.shape == (12, 12)
        assert np.allclose(K.row_sums(), 0.0, atol=1e-12)
