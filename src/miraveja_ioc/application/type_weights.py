"""
Application layer - Ranking of constructor and factory method candidates.

Pure functions: they only look at declared parameter types and argument
values, so they can be tested without a container.
"""

from typing import Any, Sequence

from miraveja_ioc.domain.type_utils import is_assignable_value, is_interface, runtime_class

MAX_WEIGHT = 2**31 - 1

RAW_ARGUMENT_BONUS = 1024
"""Subtracted from the weight computed on unconverted arguments.

An unconverted exact match is stronger evidence of intent than a match that
needed conversion, so it must win a tie. Only the ordering matters.
"""


def value_weight(parameter_type: Any, value: Any) -> int:
    """Distance between a parameter type and the class of ``value``.

    0 for an exact class match, +2 for every ancestor class of the value that
    still satisfies the parameter type, +1 when the parameter type is an
    interface (an abstract class or a protocol). ``MAX_WEIGHT`` when the value
    does not fit at all.
    """
    if not is_assignable_value(parameter_type, value):
        return MAX_WEIGHT
    if value is None:
        return 0
    target = runtime_class(parameter_type) or object
    weight = 0
    for ancestor in type(value).__mro__[1:]:
        try:
            if issubclass(ancestor, target):
                weight += 2
        except TypeError:
            break
    if is_interface(target):
        weight += 1
    return weight


def type_difference_weight(parameter_types: Sequence[Any], arguments: Sequence[Any]) -> int:
    """Sum of ``value_weight`` over all parameters; ``MAX_WEIGHT`` if any argument does not fit."""
    result = 0
    for parameter_type, argument in zip(parameter_types, arguments):
        weight = value_weight(parameter_type, argument)
        if weight == MAX_WEIGHT:
            return MAX_WEIGHT
        result += weight
    return result


def arguments_weight(
    parameter_types: Sequence[Any],
    converted_arguments: Sequence[Any],
    raw_arguments: Sequence[Any],
) -> int:
    """Weight of an argument array, preferring raw matches over converted matches of equal fit."""
    converted = type_difference_weight(parameter_types, converted_arguments)
    raw = type_difference_weight(parameter_types, raw_arguments) - RAW_ARGUMENT_BONUS
    return min(converted, raw)

