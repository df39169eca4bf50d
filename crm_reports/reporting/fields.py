"""Field and operator registry for ad-hoc CRM reports."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from crm_reports.crm.models import RecordType
from crm_reports.query.schemas import FieldKind


class FieldSource(str, Enum):
    """Where a field's value comes from."""

    NATIVE = "native"      # Column on the record's own table
    JOIN = "join"          # Display value of a related record
    COMPUTED = "computed"  # Aggregate over related records
    CUSTOM = "custom"      # Entry in the record's metadata blob


class FilterOperator(str, Enum):
    CONTAINS = "contains"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    STARTS_WITH = "starts_with"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    BEFORE = "before"
    AFTER = "after"
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"
    IS = "is"
    IS_NOT = "is_not"


@dataclass(frozen=True)
class FieldDefinition:
    """Definition of a reportable field."""

    key: str
    label: str
    kind: FieldKind
    source: FieldSource = FieldSource.NATIVE
    options: Tuple[str, ...] = ()
    default_visible: bool = False

    @property
    def is_join(self) -> bool:
        return self.source == FieldSource.JOIN

    @property
    def is_computed(self) -> bool:
        return self.source == FieldSource.COMPUTED

    @property
    def is_custom(self) -> bool:
        return self.source == FieldSource.CUSTOM

    @property
    def is_pushable(self) -> bool:
        """Native fields can be filtered and ordered by the store itself."""
        return self.source == FieldSource.NATIVE


# ===== OPERATORS =====

OPERATORS_BY_KIND: Dict[FieldKind, Tuple[FilterOperator, ...]] = {
    FieldKind.TEXT: (
        FilterOperator.CONTAINS,
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.STARTS_WITH,
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
    ),
    FieldKind.NUMBER: (
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.GT,
        FilterOperator.GTE,
        FilterOperator.LT,
        FilterOperator.LTE,
        FilterOperator.IS_EMPTY,
    ),
    FieldKind.CURRENCY: (
        FilterOperator.EQUALS,
        FilterOperator.GT,
        FilterOperator.GTE,
        FilterOperator.LT,
        FilterOperator.LTE,
    ),
    FieldKind.DATE: (
        FilterOperator.BEFORE,
        FilterOperator.AFTER,
        FilterOperator.EQUALS,
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
    ),
    FieldKind.BOOLEAN: (FilterOperator.IS_TRUE, FilterOperator.IS_FALSE),
    FieldKind.SELECT: (FilterOperator.IS, FilterOperator.IS_NOT),
}

# Equality spellings accepted for select fields and rewritten to their canonical operator
OPERATOR_ALIASES: Dict[FieldKind, Dict[FilterOperator, FilterOperator]] = {
    FieldKind.SELECT: {
        FilterOperator.EQUALS: FilterOperator.IS,
        FilterOperator.NOT_EQUALS: FilterOperator.IS_NOT,
    },
}

NO_VALUE_OPERATORS = frozenset(
    {
        FilterOperator.IS_EMPTY,
        FilterOperator.IS_NOT_EMPTY,
        FilterOperator.IS_TRUE,
        FilterOperator.IS_FALSE,
    }
)

# Builder labels; numeric kinds show symbols and date equality reads "on"
OPERATOR_LABELS: Dict[FieldKind, Dict[FilterOperator, str]] = {
    FieldKind.TEXT: {
        FilterOperator.CONTAINS: "contains",
        FilterOperator.EQUALS: "equals",
        FilterOperator.NOT_EQUALS: "does not equal",
        FilterOperator.STARTS_WITH: "starts with",
        FilterOperator.IS_EMPTY: "is empty",
        FilterOperator.IS_NOT_EMPTY: "is not empty",
    },
    FieldKind.NUMBER: {
        FilterOperator.EQUALS: "=",
        FilterOperator.NOT_EQUALS: "≠",
        FilterOperator.GT: ">",
        FilterOperator.GTE: "≥",
        FilterOperator.LT: "<",
        FilterOperator.LTE: "≤",
        FilterOperator.IS_EMPTY: "is empty",
    },
    FieldKind.CURRENCY: {
        FilterOperator.EQUALS: "=",
        FilterOperator.GT: ">",
        FilterOperator.GTE: "≥",
        FilterOperator.LT: "<",
        FilterOperator.LTE: "≤",
    },
    FieldKind.DATE: {
        FilterOperator.BEFORE: "before",
        FilterOperator.AFTER: "after",
        FilterOperator.EQUALS: "on",
        FilterOperator.IS_EMPTY: "is empty",
        FilterOperator.IS_NOT_EMPTY: "is not empty",
    },
    FieldKind.BOOLEAN: {
        FilterOperator.IS_TRUE: "is true",
        FilterOperator.IS_FALSE: "is false",
    },
    FieldKind.SELECT: {
        FilterOperator.IS: "is",
        FilterOperator.IS_NOT: "is not",
    },
}


def operators_for(kind: Union[FieldKind, str]) -> List[FilterOperator]:
    """Operators compatible with a field kind; unknown kinds get the text set."""
    try:
        kind = FieldKind(kind)
    except ValueError:
        kind = FieldKind.TEXT
    return list(OPERATORS_BY_KIND[kind])


def parse_operator(value: Union[FilterOperator, str]) -> Optional[FilterOperator]:
    try:
        return FilterOperator(value)
    except ValueError:
        return None


def canonical_operator(kind: FieldKind, operator: Optional[FilterOperator]) -> Optional[FilterOperator]:
    """The operator itself, or the canonical operator it aliases for this kind."""
    if operator is None:
        return None
    return OPERATOR_ALIASES.get(kind, {}).get(operator, operator)


# ===== FIELD REGISTRY =====

FIELD_REGISTRY: Dict[RecordType, Dict[str, FieldDefinition]] = {}

DEFAULT_SORT_FIELD = "created_at"


def register_fields(record_type: RecordType, *definitions: FieldDefinition):
    """Register field definitions for a record type, keeping declaration order."""
    fields = FIELD_REGISTRY.setdefault(record_type, {})
    for definition in definitions:
        fields[definition.key] = definition


def _record_type(record_type: Union[RecordType, str]) -> Optional[RecordType]:
    try:
        return RecordType(record_type)
    except ValueError:
        return None


def fields_for(record_type: Union[RecordType, str]) -> List[FieldDefinition]:
    """Native, join and computed fields of a record type. Unknown types have none."""
    resolved = _record_type(record_type)
    if resolved is None:
        return []
    return list(FIELD_REGISTRY.get(resolved, {}).values())


def get_field(record_type: Union[RecordType, str], key: str) -> Optional[FieldDefinition]:
    resolved = _record_type(record_type)
    if resolved is None:
        return None
    return FIELD_REGISTRY.get(resolved, {}).get(key)


def kind_of(key: str, record_type: Union[RecordType, str], custom_fields: Iterable = ()) -> FieldKind:
    """Kind of a field: registry first, then namespaced custom fields, else text."""
    field = get_field(record_type, key)
    if field is not None:
        return field.kind
    for custom_field in custom_fields:
        if custom_field.namespaced_key == key:
            return custom_field.kind
    return FieldKind.TEXT


def default_columns(record_type: Union[RecordType, str]) -> List[str]:
    """Columns a new report starts with."""
    return [field.key for field in fields_for(record_type) if field.default_visible]


def default_sort_field(record_type: Union[RecordType, str]) -> str:
    return DEFAULT_SORT_FIELD


def _field(key, label, kind, **kwargs) -> FieldDefinition:
    options = kwargs.pop("options", ())
    return FieldDefinition(key=key, label=label, kind=kind, options=tuple(options), **kwargs)


# Contacts
register_fields(
    RecordType.CONTACT,
    _field("first_name", "First Name", FieldKind.TEXT, default_visible=True),
    _field("last_name", "Last Name", FieldKind.TEXT, default_visible=True),
    _field("email", "Email", FieldKind.TEXT, default_visible=True),
    _field("phone", "Phone", FieldKind.TEXT),
    _field("title", "Job Title", FieldKind.TEXT),
    _field(
        "status", "Status", FieldKind.SELECT,
        options=["lead", "active", "inactive", "churned"], default_visible=True,
    ),
    _field("source", "Source", FieldKind.SELECT, options=["manual", "import", "ai", "referral"]),
    _field("company_name", "Company", FieldKind.TEXT, source=FieldSource.JOIN, default_visible=True),
    _field("tags", "Tags", FieldKind.TEXT),
    _field("created_at", "Created", FieldKind.DATE),
    _field("updated_at", "Updated", FieldKind.DATE),
)

# Companies
register_fields(
    RecordType.COMPANY,
    _field("name", "Name", FieldKind.TEXT, default_visible=True),
    _field("domain", "Domain", FieldKind.TEXT),
    _field("industry", "Industry", FieldKind.TEXT, default_visible=True),
    _field(
        "size", "Size", FieldKind.SELECT,
        options=["startup", "small", "medium", "large", "enterprise"], default_visible=True,
    ),
    _field("website", "Website", FieldKind.TEXT),
    _field("phone", "Phone", FieldKind.TEXT),
    _field("address", "Address", FieldKind.TEXT),
    _field("annual_revenue", "Annual Revenue", FieldKind.CURRENCY),
    _field("employees", "Employees", FieldKind.NUMBER),
    _field("sector", "Sector", FieldKind.TEXT),
    _field("account_owner", "Account Owner", FieldKind.TEXT),
    _field("contact_count", "Contacts", FieldKind.NUMBER, source=FieldSource.COMPUTED),
    _field("deal_count", "Deals", FieldKind.NUMBER, source=FieldSource.COMPUTED),
    _field("created_at", "Created", FieldKind.DATE),
    _field("updated_at", "Updated", FieldKind.DATE),
)

# Deals
register_fields(
    RecordType.DEAL,
    _field("title", "Title", FieldKind.TEXT, default_visible=True),
    _field("value", "Value", FieldKind.CURRENCY, default_visible=True),
    _field(
        "stage", "Stage", FieldKind.SELECT,
        options=["lead", "qualified", "proposal", "negotiation", "won", "lost"], default_visible=True,
    ),
    _field("probability", "Probability", FieldKind.NUMBER),
    _field("expected_close_date", "Expected Close", FieldKind.DATE, default_visible=True),
    _field("contact_name", "Contact", FieldKind.TEXT, source=FieldSource.JOIN),
    _field("company_name", "Company", FieldKind.TEXT, source=FieldSource.JOIN),
    _field("close_reason", "Close Reason", FieldKind.TEXT),
    _field("lost_to", "Lost To", FieldKind.TEXT),
    _field("closed_at", "Closed At", FieldKind.DATE),
    _field("created_at", "Created", FieldKind.DATE),
    _field("updated_at", "Updated", FieldKind.DATE),
)

# Activities
register_fields(
    RecordType.ACTIVITY,
    _field(
        "type", "Type", FieldKind.SELECT,
        options=["call", "email", "meeting", "note", "task"], default_visible=True,
    ),
    _field("subject", "Subject", FieldKind.TEXT, default_visible=True),
    _field("description", "Description", FieldKind.TEXT),
    _field("contact_name", "Contact", FieldKind.TEXT, source=FieldSource.JOIN, default_visible=True),
    _field("company_name", "Company", FieldKind.TEXT, source=FieldSource.JOIN),
    _field("scheduled_at", "Scheduled", FieldKind.DATE),
    _field("completed_at", "Completed", FieldKind.DATE),
    _field("created_at", "Created", FieldKind.DATE, default_visible=True),
)
