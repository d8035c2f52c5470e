import numpy as np
import pytest
import pyvista as pv

from pyscfea.core.mesh import Mesh
from pyscfea.utils.gmsh_reader import GmshParser
from pyscfea.utils.visualizer import FEMVisualizer


@pytest.fixture
def bar_mesh(bar_msh_text):
    return GmshParser().parse_lines(bar_msh_text.splitlines())


class TestFEMVisualizer:
    """测试结果导出"""

    def test_build_grid(self, bar_mesh):
        phi = bar_mesh.get_coordinates()[:, 0] / 2.0
        grid = FEMVisualizer.build_grid(bar_mesh, phi)
        assert grid.n_points == 12
        assert grid.n_cells == 6
        assert sorted(set(grid.celltypes.tolist())) == [5, 12]
        assert np.allclose(grid.point_data["potential"], phi)
        assert sorted(set(grid.cell_data["physical_group"].tolist())) == [1, 2, 3]

    def test_cell_type_codes(self):
        coords = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1], [1, 0, 1], [0, 1, 1]]
        mesh = Mesh.from_arrays(coords, [[0, 1, 2, 3, 4, 5]], 'prism')
        mesh.add_element('line', [0, 1], 'edge')
        grid = FEMVisualizer.build_grid(mesh)
        assert grid.celltypes.tolist() == [13, 3]

    def test_field_shape_checks(self, bar_mesh):
        with pytest.raises(ValueError):
            FEMVisualizer.build_grid(bar_mesh, np.zeros(5))
        with pytest.raises(ValueError):
            FEMVisualizer.build_grid(bar_mesh, np.zeros(12), current_density=np.zeros((6, 2)))

    @pytest.mark.parametrize("suffix", [".vtk", ".vtu"])
    def test_export_roundtrip(self, bar_mesh, tmp_path, suffix):
        phi = np.linspace(0, 1, 12)
        current = np.tile([-1.0, 0.0, 0.0], (6, 1))
        path = tmp_path / f"result{suffix}"
        FEMVisualizer.export(path, bar_mesh, phi, current_density=current)
        assert path.exists()

        loaded = pv.read(path)
        assert np.allclose(loaded.point_data["potential"], phi)
        assert loaded.cell_data["current_density"].shape == (6, 3)

    def test_unsupported_suffix(self, bar_mesh, tmp_path):
        with pytest.raises(ValueError):
            FEMVisualizer.export(tmp_path / "result.csv", bar_mesh, np.zeros(12))

    def test_scalar_range(self, bar_mesh):
        grid = FEMVisualizer.build_grid(bar_mesh, np.linspace(-1, 3, 12))
        assert FEMVisualizer.get_scalar_range(grid, "potential") == (-1.0, 3.0)
        assert FEMVisualizer.get_scalar_range(grid, "missing") == (None, None)
