from enum import Enum


class ConnectionRole(str, Enum):
    SOURCE = "source"
    TARGET = "target"


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    SELECTED = "selected"
    FAILED = "failed"
    ERROR = "error"


class FlowNodeType(str, Enum):
    TABLE = "table"
    TRANSFORMATION = "transformation"
    OUTPUT = "output"


class FlowEdgeType(str, Enum):
    RELATIONSHIP = "relationship"
    MAPPING = "mapping"
    FLOW = "flow"


class TransformationOperationType(str, Enum):
    """Tagged variants of a column/row transformation."""
    RENAME = "rename"
    CAST = "cast"
    NORMALIZE = "normalize"
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    TRIM = "trim"
    FILTER = "filter"
    DROP = "drop"
    FILL_NULL = "fill_null"


class FilterOperator(str, Enum):
    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    CONTAINS = "contains"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"


class NoticeVariant(str, Enum):
    DEFAULT = "default"
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DESTRUCTIVE = "destructive"


class ExportFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
