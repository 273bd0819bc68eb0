"""
Path and intrinsic expression engine
"""
from .evaluator import parse_expression, select
from .intrinsics import IntrinsicRegistry, intrinsics
from .paths import MISSING, compile_path, get_path, set_path
from .template import StringTemplateParser, render_template

__all__ = [
    "MISSING",
    "IntrinsicRegistry",
    "StringTemplateParser",
    "get_path",
    "intrinsics",
    "parse_expression",
    "compile_path",
    "render_template",
    "select",
    "set_path",
]
