"""
Instruction Interpreter Repository.

Turns a free-text transformation instruction into a TransformationPlan.

The interpreter is a Protocol so another implementation (an LLM backed one,
a DSL parser) can be swapped in without touching TransformationService.
The default RuleBasedInterpreter recognises one operation per clause;
clauses are separated by ";", ",", "then" or "and".

Recognised clauses (case-insensitive, column names are identifiers):
    rename <col> to <new>
    cast|convert <col> to int|integer|decimal|float|number|string|text|varchar|bool|boolean
    normalize <col>
    uppercase|upper <col>        lowercase|lower <col>        trim <col>
    drop|remove|delete [column] <col>
    filter|keep [rows] where <col> <op> [value]
        op: = == != > >= < <= contains "is null" "is not null"
    fill null[s]|missing [values] in <col> with <value>

Clauses that match no rule are ignored. An instruction in which no clause
matches yields a plan without operations (a free-form instruction).
"""

import re
from typing import Any, Callable, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from ..domain.base_enums import FilterOperator
from ..domain.errors import InstructionParseError
from ..domain.transformations import (
    CastColumn,
    DropColumn,
    FillNull,
    FilterRows,
    LowercaseColumn,
    NormalizeColumn,
    RenameColumn,
    TransformationPlan,
    TrimColumn,
    UppercaseColumn,
)
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()


class InstructionInterpreter(Protocol):
    """Anything that can turn an instruction into a plan."""

    def interpret(self, instruction: str, schema_name: str, table_name: str) -> TransformationPlan:
        ...


_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"

# Quoted literals are matched whole so separators inside them do not split
_CLAUSE_TOKEN = re.compile(
    r"""(?P<quoted>'[^']*'|"[^"]*")|\s*(?:;|,|\bthen\b|\band\b)\s*""",
    re.IGNORECASE,
)

TYPE_SYNONYMS = {
    "int": "INTEGER",
    "integer": "INTEGER",
    "decimal": "DECIMAL",
    "float": "DECIMAL",
    "number": "DECIMAL",
    "numeric": "DECIMAL",
    "string": "VARCHAR",
    "text": "VARCHAR",
    "varchar": "VARCHAR",
    "bool": "BOOLEAN",
    "boolean": "BOOLEAN",
}

OPERATOR_SYNONYMS = {
    "=": FilterOperator.EQ,
    "==": FilterOperator.EQ,
    "!=": FilterOperator.NE,
    ">": FilterOperator.GT,
    ">=": FilterOperator.GE,
    "<": FilterOperator.LT,
    "<=": FilterOperator.LE,
    "contains": FilterOperator.CONTAINS,
    "is null": FilterOperator.IS_NULL,
    "is not null": FilterOperator.NOT_NULL,
}


def parse_literal(raw: Optional[str]) -> Any:
    """
    Convert a literal from an instruction to a Python value.

    Quoted text stays a string; integers, decimals, booleans and "null" are
    converted; anything else is returned as stripped text.
    """
    if raw is None:
        return None
    text = raw.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1]
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in ("null", "none"):
        return None
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    if re.fullmatch(r"-?\d*\.\d+", text):
        return float(text)
    return text


def _rename(match: re.Match) -> RenameColumn:
    return RenameColumn(column=match["column"], new_name=match["new_name"])


def _cast(match: re.Match) -> CastColumn:
    return CastColumn(column=match["column"], target_type=TYPE_SYNONYMS[match["type"].lower()])


def _filter(match: re.Match) -> FilterRows:
    operator = OPERATOR_SYNONYMS[" ".join(match["operator"].lower().split())]
    value = None
    if operator not in (FilterOperator.IS_NULL, FilterOperator.NOT_NULL):
        if match["value"] is None:
            raise InstructionParseError(
                f"Filter on '{match['column']}' needs a value",
                details={"clause": match.group(0)},
            )
        value = parse_literal(match["value"])
    return FilterRows(column=match["column"], operator=operator, value=value)


def _fill_null(match: re.Match) -> FillNull:
    return FillNull(column=match["column"], value=parse_literal(match["value"]))


_RULES: List[tuple[re.Pattern, Callable[[re.Match], Any]]] = [
    (
        re.compile(rf"^rename\s+(?:column\s+)?(?P<column>{_IDENT})\s+(?:to|as)\s+(?P<new_name>{_IDENT})$", re.I),
        _rename,
    ),
    (
        re.compile(
            rf"^(?:cast|convert)\s+(?:column\s+)?(?P<column>{_IDENT})\s+(?:to|as)\s+(?P<type>{'|'.join(TYPE_SYNONYMS)})$",
            re.I,
        ),
        _cast,
    ),
    (
        re.compile(rf"^normali[sz]e\s+(?:column\s+)?(?P<column>{_IDENT})$", re.I),
        lambda m: NormalizeColumn(column=m["column"]),
    ),
    (
        re.compile(rf"^(?:uppercase|upper)\s+(?:column\s+)?(?P<column>{_IDENT})$", re.I),
        lambda m: UppercaseColumn(column=m["column"]),
    ),
    (
        re.compile(rf"^(?:lowercase|lower)\s+(?:column\s+)?(?P<column>{_IDENT})$", re.I),
        lambda m: LowercaseColumn(column=m["column"]),
    ),
    (
        re.compile(rf"^trim\s+(?:column\s+)?(?P<column>{_IDENT})$", re.I),
        lambda m: TrimColumn(column=m["column"]),
    ),
    (
        re.compile(rf"^(?:drop|remove|delete)\s+(?:column\s+)?(?P<column>{_IDENT})$", re.I),
        lambda m: DropColumn(column=m["column"]),
    ),
    (
        re.compile(
            rf"^(?:filter|keep)(?:\s+rows)?\s+where\s+(?P<column>{_IDENT})\s+"
            r"(?P<operator>is\s+not\s+null|is\s+null|contains|==|!=|>=|<=|=|>|<)"
            r"(?:\s*(?P<value>.+))?$",
            re.I,
        ),
        _filter,
    ),
    (
        re.compile(
            rf"^fill\s+(?:nulls?|missing)(?:\s+values)?\s+in\s+(?P<column>{_IDENT})\s+with\s+(?P<value>.+)$",
            re.I,
        ),
        _fill_null,
    ),
]


class RuleBasedInterpreter:
    """
    Default regex-based interpreter.

    Usage:
        plan = RuleBasedInterpreter().interpret(
            "rename fullname to name; uppercase country", "public", "customers"
        )
        plan.describe()  # ["rename(fullname)", "uppercase(country)"]
    """

    def split_clauses(self, instruction: str) -> List[str]:
        text = instruction.strip()
        clauses = []
        start = 0
        for token in _CLAUSE_TOKEN.finditer(text):
            if token["quoted"]:
                continue
            clauses.append(text[start:token.start()])
            start = token.end()
        clauses.append(text[start:])
        return [clause.strip() for clause in clauses if clause.strip()]

    def interpret(self, instruction: str, schema_name: str, table_name: str) -> TransformationPlan:
        """
        Build a plan from an instruction.

        Raises:
            InstructionParseError: A clause matched a rule but its arguments are invalid
        """
        operations = []
        ignored: List[str] = []

        for clause in self.split_clauses(instruction):
            for pattern, build in _RULES:
                match = pattern.match(clause)
                if match is None:
                    continue
                try:
                    operations.append(build(match))
                except PydanticValidationError as e:
                    raise InstructionParseError(
                        f"Invalid clause '{clause}': {e.errors()[0]['msg']}",
                        details={"clause": clause},
                    ) from e
                break
            else:
                ignored.append(clause)

        plan = TransformationPlan(
            instruction=instruction,
            schema_name=schema_name,
            table_name=table_name,
            operations=operations,
        )

        logger.info(
            "Instruction interpreted",
            table=f"{schema_name}.{table_name}",
            operations=plan.describe(),
            ignored_clauses=len(ignored),
            free_form=plan.is_free_form,
            trace_id=current_trace_id(),
        )
        return plan
