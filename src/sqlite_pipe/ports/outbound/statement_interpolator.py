"""Statement interpolator port.

Parameter binding is a pure string transform: the shell has no bind API,
so positional placeholders are replaced with quoted SQL literals before
the statement is queued.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Sequence
from typing import Any, Protocol


class StatementInterpolator(Protocol):
    """Protocol for turning a template plus parameters into SQL text."""

    @abstractmethod
    def interpolate(self, statement: str, params: Sequence[Any]) -> str:
        """Substitute positional placeholders with SQL literals.

        Args:
            statement: Template containing ``?`` placeholders.
            params: Values in placeholder order.

        Returns:
            The statement with every placeholder replaced.

        Raises:
            ParameterCountError: If there are more placeholders than params.
            ParameterTypeError: If a value has no SQL literal form.
        """
        ...
