# 文件: pyscfea/main.py
"""
命令行入口

    pyscfea model.msh materials.txt --dirichlet anode=1 --dirichlet cathode=0 -o result.vtu
"""
import argparse
import logging
import sys
from pathlib import Path

from .core.exceptions import SCFEAError
from .solver.boundary_conditions import DirichletBoundaryCondition, NeumannBoundaryCondition
from .solver.stationary_current_solver import DEFAULT_SOLVER_CONFIG, StationaryCurrentSolver
from .utils.material_reader import read_material_file
from .utils.visualizer import FEMVisualizer

logger = logging.getLogger("pyscfea")


def group_value(text):
    """解析 GROUP=VALUE 形式的参数。"""
    group, sep, value = text.rpartition('=')
    if not sep or not group:
        raise argparse.ArgumentTypeError(f"expected GROUP=VALUE, got '{text}'")
    try:
        return group, float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value '{value}' in '{text}'") from None


def build_parser():
    parser = argparse.ArgumentParser(
        prog='pyscfea',
        description='Stationary current (DC conduction) finite element solver',
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument('mesh', type=Path, help='Gmsh MSH 2.2 ASCII mesh file')
    parser.add_argument(
        'materials', type=Path,
        help='Material file: one "group conductivity" or "group=conductivity" per line'
    )
    parser.add_argument(
        '--dirichlet', type=group_value, action='append', default=[], metavar='GROUP=VALUE',
        help='Prescribed potential on a physical group (repeatable;\n'
             'the later condition wins on shared nodes)'
    )
    parser.add_argument(
        '--neumann', type=group_value, action='append', default=[], metavar='GROUP=VALUE',
        help='Prescribed nodal current on a physical group (repeatable)'
    )
    parser.add_argument(
        '-o', '--output', type=Path, default=None,
        help='Result file (.vtk or .vtu, default: mesh path with .vtk)'
    )
    parser.add_argument(
        '--method', choices=['gauss_seidel', 'direct'], default=DEFAULT_SOLVER_CONFIG['method'],
        help='Linear solver (default: gauss_seidel)'
    )
    parser.add_argument(
        '--tol', type=float, default=DEFAULT_SOLVER_CONFIG['tol'],
        help='Gauss-Seidel convergence tolerance (default: 1e-10)'
    )
    parser.add_argument(
        '--max-iter', type=int, default=DEFAULT_SOLVER_CONFIG['max_iter'],
        help='Gauss-Seidel sweep limit (default: 1000)'
    )
    parser.add_argument(
        '--default-conductivity', type=float, default=None,
        help='Conductivity for groups missing from the material file\n'
             '(default: missing groups are an error)'
    )
    parser.add_argument(
        '--workers', type=int, default=DEFAULT_SOLVER_CONFIG['workers'],
        help='Threads used to compute element matrices (default: 1)'
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug output')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Warnings and errors only')
    return parser


def run(args):
    """按命令行参数执行完整求解流程，返回写出的文件路径。"""
    output = args.output if args.output is not None else args.mesh.with_suffix('.vtk')
    if output.suffix.lower() not in FEMVisualizer.SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported output format '{output.suffix}', expected .vtk or .vtu")

    solver = StationaryCurrentSolver(solver_config={
        "method": args.method,
        "tol": args.tol,
        "max_iter": args.max_iter,
        "default_conductivity": args.default_conductivity,
        "workers": args.workers,
    })

    # 1. 输入
    solver.load_mesh(args.mesh)
    solver.set_materials(read_material_file(args.materials))
    for group, value in args.neumann:
        solver.add_boundary_condition(NeumannBoundaryCondition(group, value))
    for group, value in args.dirichlet:
        solver.add_boundary_condition(DirichletBoundaryCondition(group, value))

    # 2. 求解
    result = solver.run()
    if not result.converged:
        raise SCFEAError(
            f"Solver did not converge after {result.iterations} iterations "
            f"(max |dx| = {result.residual:.3e}); no result written"
        )

    # 3. 输出
    grid = solver.export(output)
    vmin, vmax = FEMVisualizer.get_scalar_range(grid, "potential")
    logger.info("Potential range: [%g, %g]", vmin, vmax)
    return output


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format='%(levelname)s: %(message)s')

    try:
        run(args)
    except (SCFEAError, OSError, ValueError) as e:
        logger.error("Error: %s", e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
