'''Post shapes shared by the API server and the front end.

``Post`` is the full record as the store hands it out. ``CreatePost`` drops the
server-assigned fields and ``UpdatePost`` makes every remaining field optional.
``validate`` runs a payload through one of the shapes and reports every bad
field at once.
'''
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

TITLE_MAX_LENGTH : int = 100

# canonical 8-4-4-4-12 form only; uuid.UUID alone would also take bare hex and braces
UUID_PATTERN : re.Pattern = re.compile(r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$')
TIMESTAMP_PATTERN : re.Pattern = re.compile(r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$')

# (field, pydantic error type) -> message shown to the user
MESSAGES : dict[tuple[str, str], str] = {
    ('title', 'missing'): 'Title is required',
    ('title', 'string_too_short'): 'Title is required',
    ('title', 'string_too_long'): f'Title must be less than {TITLE_MAX_LENGTH} characters',
    ('content', 'missing'): 'Content is required',
    ('content', 'string_too_short'): 'Content is required',
    ('id', 'value_error'): 'Invalid uuid',
    ('createdAt', 'value_error'): 'Invalid datetime',
    ('updatedAt', 'value_error'): 'Invalid datetime',
}


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


class CreatePost(BaseModel):
    model_config = ConfigDict(extra='ignore')

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=1)


class UpdatePost(BaseModel):
    model_config = ConfigDict(extra='ignore')

    # defaults are not validated, so an omitted field stays unset while an explicit null is rejected
    title: str = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(None, min_length=1)

    def changes(self) -> dict[str, str]:
        '''Only the fields the caller actually sent.'''
        return self.model_dump(exclude_unset=True)


class Post(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(min_length=1)
    created_at: datetime = Field(alias='createdAt')
    updated_at: datetime = Field(alias='updatedAt')

    @field_validator('id', mode='before')
    @classmethod
    def _canonical_id(cls, value: Any) -> Any:
        if isinstance(value, UUID):
            return value
        if not isinstance(value, str) or not UUID_PATTERN.match(value):
            raise ValueError('Invalid uuid')
        return value

    # on the wire only full ISO 8601 strings with an offset; the stores pass datetimes
    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def _iso_timestamp(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str) or not TIMESTAMP_PATTERN.match(value):
            raise ValueError('Invalid datetime')
        return value

    @field_validator('created_at', 'updated_at')
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_serializer('created_at', 'updated_at')
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


@dataclass(frozen=True)
class FieldIssue:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {'field': self.field, 'message': self.message}


class PayloadValidationError(ValueError):
    '''Raised by ``validate`` with one issue per offending field.'''

    def __init__(self, issues: list[FieldIssue]):
        self.issues : list[FieldIssue] = issues
        super().__init__('; '.join(f'{issue.field}: {issue.message}' for issue in issues))

    @property
    def fields(self) -> dict[str, str]:
        return {issue.field: issue.message for issue in self.issues}


def _issues_from(error: ValidationError) -> list[FieldIssue]:
    issues : list[FieldIssue] = []
    seen : set[str] = set()
    for detail in error.errors():
        field : str = '.'.join(str(part) for part in detail['loc']) or 'body'
        if field in seen:
            continue
        seen.add(field)
        message : str = MESSAGES.get((field, detail['type']), detail['msg'])
        issues.append(FieldIssue(field, message))
    return issues


ShapeT = TypeVar('ShapeT', bound=BaseModel)


def validate(shape: type[ShapeT], payload: Any) -> ShapeT:
    if not isinstance(payload, dict):
        raise PayloadValidationError([FieldIssue('body', 'Request body must be a JSON object')])
    try:
        return shape.model_validate(payload)
    except ValidationError as error:
        raise PayloadValidationError(_issues_from(error)) from error
