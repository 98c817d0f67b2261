"""Turtle command language: grammar, variables/functions and the interpreter."""

from .environment import Environment, FunctionTable, UserFunction, VariableStore
from .completion import CompletionChannel
from .interpreter import Interpreter

__all__ = [
    "Environment",
    "FunctionTable",
    "UserFunction",
    "VariableStore",
    "CompletionChannel",
    "Interpreter",
]
