from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

IDENTITY_LABELS: tuple[str, ...] = ("driver", "host", "database", "user")
COLUMN_LABEL = "col"
JOB_LABEL = "sql_job"


class Descriptor(BaseModel):
    """Immutable shape shared by every sample of one query.

    Label order is fixed at creation: static labels, the connection identity
    labels, the ``col`` label naming the value column, then the label columns
    discovered from the first result row. Samples carry their label values
    positionally, so they must be built in exactly this order.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    help: str = ""
    static_labels: tuple[str, ...] = ()
    label_columns: tuple[str, ...] = ()
    job: str = ""

    @property
    def label_names(self) -> tuple[str, ...]:
        return self.static_labels + IDENTITY_LABELS + (COLUMN_LABEL,) + self.label_columns

    @property
    def const_labels(self) -> dict[str, str]:
        return {JOB_LABEL: self.job}


class Sample(BaseModel):
    """One gauge measurement built against a descriptor. Never mutated."""

    model_config = ConfigDict(frozen=True)

    descriptor: Descriptor
    value: float
    label_values: tuple[str, ...]

    @model_validator(mode="after")
    def validate_label_count(self):
        expected = len(self.descriptor.label_names)
        if len(self.label_values) != expected:
            raise ValueError(
                f"Sample for '{self.descriptor.name}' has {len(self.label_values)} label values, expected {expected}"
            )
        return self

    @property
    def labels(self) -> dict[str, str]:
        return dict(zip(self.descriptor.label_names, self.label_values))
