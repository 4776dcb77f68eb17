'''The ``{success, data?, message?, error?}`` wrapper every API response uses.'''
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from flask import Response, jsonify


@dataclass(frozen=True)
class DataResult:
    data: Any
    message: Optional[str] = None
    status: int = 200

    def to_dict(self) -> dict[str, Any]:
        body : dict[str, Any] = {'success': True, 'data': self.data}
        if self.message is not None:
            body['message'] = self.message
        return body


@dataclass(frozen=True)
class MessageResult:
    message: str
    status: int = 200

    def to_dict(self) -> dict[str, Any]:
        return {'success': True, 'message': self.message}


@dataclass(frozen=True)
class ErrorResult:
    error: str
    status: int = 400
    issues: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body : dict[str, Any] = {'success': False, 'error': self.error}
        if self.issues:
            body['issues'] = self.issues
        return body


Envelope = Union[DataResult, MessageResult, ErrorResult]


def respond(result: Envelope) -> tuple[Response, int]:
    return jsonify(result.to_dict()), result.status
