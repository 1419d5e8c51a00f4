from enum import Enum, IntEnum
# enums.py


class Relation(IntEnum):
    ONE_TO_ONE = 0
    ONE_TO_MANY = 1
    MANY_TO_MANY = 2
    BELONGS_TO = 3


class CrudEvent(str, Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    DELETED = 'deleted'


class CrudOperation(str, Enum):
    CREATE = 'CREATE'
    READ = 'READ'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'


class RelationErrorType(str, Enum):
    ONE_TO_ONE = 'ONE-TO-ONE'
    ONE_TO_MANY = 'ONE-TO-MANY'
    MANY_TO_MANY = 'MANY-TO-MANY'
    BELONGS_TO = 'BELONGS-TO'
    UNKNOWN = 'UNKNOWN'


class ValidationErrorType(str, Enum):
    INCOMPLETE = 'INCOMPLETE'
    UNIQUE = 'UNIQUE'
    UNKNOWN = 'UNKNOWN'


class LinkKind(str, Enum):
    OWN = 'own'
    SHARED = 'shared'
