from .gmsh_reader import GmshParser
from .material_reader import parse_material_lines, read_material_file

__all__ = [
    'GmshParser',
    'parse_material_lines',
    'read_material_file',
]
