# 文件: pyscfea/tests/test_stationary_current_solver.py
"""
求解流程测试：状态机与端到端算例
"""
import numpy as np
import pytest

from pyscfea.core.exceptions import (
    BoundaryConditionError,
    MissingMaterialPropertyError,
    SingularMatrixError,
    SolverStateError,
)
from pyscfea.core.material import MaterialProperties
from pyscfea.core.mesh import Mesh
from pyscfea.solver.boundary_conditions import DirichletBoundaryCondition, NeumannBoundaryCondition
from pyscfea.solver.stationary_current_solver import (
    SolverState,
    StationaryCurrentSolver,
    merge_solver_config,
)
from pyscfea.tests.conftest import build_chain_mesh


def chain_solver(n, method='gauss_seidel', left=0.0, right=1.0):
    solver = StationaryCurrentSolver(build_chain_mesh(n), solver_config={"method": method})
    solver.set_material_properties('wire', 1.0)
    solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([0], left))
    solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([n], right))
    return solver


class TestConfig:
    """测试求解器配置"""

    def test_defaults(self):
        config = merge_solver_config()
        assert config["method"] == "gauss_seidel"
        assert config["tol"] == 1e-10
        assert config["max_iter"] == 1000
        assert config["default_conductivity"] is None

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            StationaryCurrentSolver(solver_config={"precond": "ilu"})

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            StationaryCurrentSolver(solver_config={"method": "cg"})


class TestStateMachine:
    """测试状态转移"""

    def test_forward_sequence(self):
        solver = chain_solver(4)
        assert solver.state is SolverState.UNASSEMBLED
        solver.assemble()
        assert solver.state is SolverState.ASSEMBLED
        solver.apply_boundary_conditions()
        assert solver.state is SolverState.BOUNDARY_APPLIED
        result = solver.solve()
        assert solver.state is SolverState.SOLVED
        assert result.converged and solver.converged

    def test_solve_requires_boundary_applied(self):
        solver = chain_solver(2)
        with pytest.raises(SolverStateError):
            solver.solve()
        solver.assemble()
        with pytest.raises(SolverStateError):
            solver.solve()

    def test_apply_requires_assembled(self):
        solver = chain_solver(2)
        with pytest.raises(SolverStateError):
            solver.apply_boundary_conditions()
        solver.run()
        with pytest.raises(SolverStateError):
            solver.apply_boundary_conditions()

    def test_results_require_solved(self):
        solver = chain_solver(2)
        solver.assemble()
        with pytest.raises(SolverStateError):
            solver.get_solution()
        with pytest.raises(SolverStateError):
            solver.compute_current_density()

    def test_assemble_without_mesh(self):
        with pytest.raises(SolverStateError):
            StationaryCurrentSolver().assemble()

    def test_reassemble_after_solve_rebuilds(self):
        """求解后重新组装：完整重建，而不是在已施加边界条件的矩阵上修改"""
        solver = chain_solver(3)
        solver.run()
        first = solver.get_solution()

        K, _ = solver.assemble()
        assert solver.state is SolverState.ASSEMBLED
        assert solver.result is None
        assert np.allclose(K.row_sums(), 0.0)

        solver.apply_boundary_conditions()
        solver.solve()
        assert np.allclose(solver.get_solution(), first)

    def test_material_change_invalidates_system(self):
        solver = chain_solver(2)
        solver.assemble()
        solver.set_material_properties('wire', 2.0)
        assert solver.state is SolverState.UNASSEMBLED
        assert solver.K_global is None

    def test_adding_condition_keeps_assembly(self):
        solver = chain_solver(2)
        solver.assemble()
        solver.add_boundary_condition(NeumannBoundaryCondition.on_nodes([1], 0.0))
        assert solver.state is SolverState.ASSEMBLED

    def test_adding_condition_after_apply_discards_system(self):
        solver = chain_solver(2)
        solver.assemble()
        solver.apply_boundary_conditions()
        solver.add_boundary_condition(NeumannBoundaryCondition.on_nodes([1], 1.0))
        assert solver.state is SolverState.UNASSEMBLED
        assert solver.K_global is None
        with pytest.raises(SolverStateError):
            solver.apply_boundary_conditions()

    def test_failed_stage_does_not_advance(self):
        solver = StationaryCurrentSolver(build_chain_mesh(2))
        with pytest.raises(MissingMaterialPropertyError):
            solver.assemble()
        assert solver.state is SolverState.UNASSEMBLED

        solver.set_material_properties('wire', 1.0)
        solver.add_boundary_condition(DirichletBoundaryCondition('missing', 0.0))
        solver.assemble()
        with pytest.raises(BoundaryConditionError):
            solver.apply_boundary_conditions()
        assert solver.state is SolverState.ASSEMBLED


class TestEndToEnd:
    """端到端算例"""

    @pytest.mark.parametrize("n", [1, 2, 5, 10])
    def test_chain_linear_profile(self, n):
        """N 个单位线单元，两端 0 / 1：内部节点 φ_i = x_i / N"""
        solver = chain_solver(n)
        solver.run()
        phi = solver.get_solution()
        assert np.allclose(phi, np.arange(n + 1) / n, atol=1e-8)

    def test_chain_direct_and_iterative_agree(self):
        iterative = chain_solver(8)
        iterative.run()
        direct = chain_solver(8, method='direct')
        direct.run()
        assert np.max(np.abs(iterative.get_solution() - direct.get_solution())) < 1e-8

    def test_dirichlet_nodes_exact(self):
        solver = chain_solver(6, left=-2.0, right=3.5)
        solver.add_boundary_condition(NeumannBoundaryCondition.on_nodes([3], 4.0))
        solver.run()
        phi = solver.get_solution()
        assert abs(phi[0] + 2.0) < 1e-10
        assert abs(phi[6] - 3.5) < 1e-10

    def test_later_dirichlet_wins(self):
        solver = chain_solver(4)
        solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([4], 2.0))
        solver.run()
        assert np.isclose(solver.get_solution()[4], 2.0)
        assert np.allclose(solver.get_solution(), np.arange(5) / 2.0, atol=1e-8)

    def test_neumann_current_injection(self):
        """右端注入电流 I，左端接地：φ_N = I L / σ"""
        n, current, sigma = 4, 0.5, 2.0
        solver = StationaryCurrentSolver(build_chain_mesh(n))
        solver.set_material_properties('wire', MaterialProperties.from_conductivity(sigma))
        solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([0], 0.0))
        solver.add_boundary_condition(NeumannBoundaryCondition.on_nodes([n], current))
        solver.run()
        assert np.allclose(solver.get_solution(), current * np.arange(n + 1) / sigma, atol=1e-8)

    def test_bar_mesh(self, bar_msh_file):
        """2×1×1 六面体长条：两端 0 / 1，φ = x / 2，J = -σ/2 ex"""
        solver = StationaryCurrentSolver(solver_config={"workers": 2})
        mesh = solver.load_mesh(bar_msh_file)
        solver.set_material_properties('bar', 2.0)
        solver.add_boundary_condition(DirichletBoundaryCondition('left', 0.0))
        solver.add_boundary_condition(DirichletBoundaryCondition('right', 1.0))
        solver.run()

        phi = solver.get_solution()
        x = mesh.get_coordinates()[:, 0]
        assert np.allclose(phi, x / 2.0, atol=1e-8)

        J = solver.compute_current_density()
        assert J.shape == (mesh.n_elements, 3)
        hexes = [i for i, e in enumerate(mesh.elements) if e.dim == 3]
        boundary = [i for i, e in enumerate(mesh.elements) if e.dim < 3]
        assert np.allclose(J[hexes], [-1.0, 0.0, 0.0], atol=1e-7)
        assert np.all(np.isnan(J[boundary]))

    def test_tetra_mesh_matches_direct(self, two_tetra_mesh):
        results = []
        for method in ('gauss_seidel', 'direct'):
            solver = StationaryCurrentSolver(two_tetra_mesh, solver_config={"method": method})
            solver.set_material_properties('body', 1.0)
            solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([0], 0.0))
            solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([4], 1.0))
            solver.run()
            results.append(solver.get_solution())
        assert np.max(np.abs(results[0] - results[1])) < 1e-8

    def test_floating_system_is_singular_for_direct(self):
        """没有 Dirichlet 条件时方程组奇异"""
        mesh = Mesh.from_arrays([0.0, 1.0, 2.0], [[0, 1], [1, 2]], 'line', 'wire')
        solver = StationaryCurrentSolver(mesh, solver_config={"method": "direct"})
        solver.set_material_properties('wire', 1.0)
        solver.assemble()
        solver.apply_boundary_conditions()
        with pytest.raises(SingularMatrixError):
            solver.solve()
        assert solver.state is SolverState.BOUNDARY_APPLIED

    def test_non_converged_result_is_flagged(self):
        solver = StationaryCurrentSolver(build_chain_mesh(30), solver_config={"max_iter": 3})
        solver.set_material_properties('wire', 1.0)
        solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([0], 0.0))
        solver.add_boundary_condition(DirichletBoundaryCondition.on_nodes([30], 1.0))
        result = solver.run()
        assert not result.converged
        assert not solver.converged
        assert solver.get_solution().shape == (31,)
