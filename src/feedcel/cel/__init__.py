"""
Filter expression language: a typed CEL subset.

Expressions are parsed, statically checked against the declared environment
and compiled into immutable programs.
"""

from feedcel.cel.env import Environment, Program, new_env
from feedcel.cel.functions import EvalFault, NoSuchFieldFault

__all__ = [
    'Environment',
    'Program',
    'new_env',
    'EvalFault',
    'NoSuchFieldFault',
]
