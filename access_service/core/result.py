"""Uniform success/failure result returned by every facade operation.

Callers branch on the type instead of checking an ``ok`` flag by convention::

    result = facade.create_role(...)
    if isinstance(result, Ok):
        role = result.value
    else:
        log(result.error.message)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from access_service.core.exceptions import AccessServiceError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: AccessServiceError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return self.error.message


Result = Union[Ok[T], Err]


def unwrap(result: "Result[T]") -> T:
    """Return the success value or raise the carried error."""
    if isinstance(result, Err):
        raise result.error
    return result.value
