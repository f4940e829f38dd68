"""Application schema tree: packages containing classes containing properties.

These models are the contract between model loaders and the diff engine.
A loader (UML tool export, interchange file, serialised snapshot) produces
one :class:`PackageNode` per application schema; the engine only ever reads
them.

Identifiers are stable within the model they were loaded from but carry no
guarantee of uniqueness across two models.  Cross-element references
(class -> supertype) are expressed by identifier, never by object reference,
so the trees can be indexed into an arena without back-pointers.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NodeKind(str, Enum):
    """Kind of schema element."""

    PACKAGE = "package"
    CLASS = "class"
    PROPERTY = "property"


class ClassCategory(str, Enum):
    """Modelling category of a class, usually derived from its stereotype."""

    FEATURE_TYPE = "featuretype"
    OBJECT_TYPE = "objecttype"
    DATA_TYPE = "datatype"
    ENUMERATION = "enumeration"
    CODE_LIST = "codelist"
    UNION = "union"
    MIXIN = "mixin"
    BASIC_TYPE = "basictype"
    UNKNOWN = "unknown"

    @property
    def has_literals(self) -> bool:
        """Whether the properties of classes in this category are enum literals."""
        return self in (ClassCategory.ENUMERATION, ClassCategory.CODE_LIST)


class Multiplicity(BaseModel):
    """Cardinality of a property; ``upper=None`` means unbounded."""

    model_config = ConfigDict(frozen=True)

    lower: int = Field(default=1, ge=0)
    upper: int | None = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> Multiplicity:
        if self.upper is not None and self.upper < self.lower:
            raise ValueError(f"Multiplicity upper bound {self.upper} is below lower bound {self.lower}")
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.upper is None

    def render(self) -> str:
        """Render as UML cardinality text, e.g. ``1``, ``0..1``, ``1..*``."""
        upper = "*" if self.upper is None else str(self.upper)
        if self.upper is not None and self.lower == self.upper:
            return upper
        return f"{self.lower}..{upper}"


class SchemaElement(BaseModel):
    """Descriptor contract shared by packages, classes and properties."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Identifier, unique within its source model.")
    name: str = Field(..., min_length=1)
    alias: str = ""
    documentation: str = ""
    definition: str = ""
    description: str = ""
    stereotypes: list[str] = Field(default_factory=list)
    tagged_values: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Tag name -> ordered values.",
    )
    primary_code: str = ""
    global_identifier: str = ""
    legal_basis: str = ""
    language: str = ""
    data_capture_statements: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)


class PropertyNode(SchemaElement):
    """An attribute or association role of a class, or an enum literal."""

    kind: Literal["property"] = "property"
    multiplicity: Multiplicity = Field(default_factory=Multiplicity)
    value_type: str = ""
    value_type_id: str | None = None
    initial_value: str = ""


class ClassNode(SchemaElement):
    """A classifier and its ordered property list."""

    kind: Literal["class"] = "class"
    category: ClassCategory = ClassCategory.UNKNOWN
    supertypes: list[str] = Field(
        default_factory=list,
        description="Identifiers of the direct supertypes, in declaration order.",
    )
    properties: list[PropertyNode] = Field(default_factory=list)


class PackageNode(SchemaElement):
    """A package; a top-level package is an application schema."""

    kind: Literal["package"] = "package"
    subpackages: list[PackageNode] = Field(default_factory=list)
    classes: list[ClassNode] = Field(default_factory=list)


SchemaNode = Annotated[
    Union[PackageNode, ClassNode, PropertyNode],
    Field(discriminator="kind"),
]
