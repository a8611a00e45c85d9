"""Expose cached query samples through a prometheus_client custom collector."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

from loguru import logger
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

if TYPE_CHECKING:
    from sql_exporter.collector.query import Query


class QueryCollector(Collector):
    """Yields one gauge family per discovered query descriptor.

    Samples are read through ``Query.samples()`` so a family never mixes two
    scrapes of the same connection. Queries that have not been discovered yet
    are left out.
    """

    def __init__(self, queries: Iterable[Query] = ()):
        self._queries: list[Query] = list(queries)

    def add_queries(self, queries: Iterable[Query]) -> None:
        self._queries.extend(queries)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families: dict[str, GaugeMetricFamily] = {}
        layouts: dict[str, tuple[str, ...]] = {}

        for query in self._queries:
            desc = query.descriptor
            if desc is None:
                continue

            const_labels = desc.const_labels
            label_names = desc.label_names + tuple(const_labels)
            family = families.get(desc.name)
            if family is None:
                family = GaugeMetricFamily(desc.name, desc.help, labels=list(label_names))
                families[desc.name] = family
                layouts[desc.name] = label_names
            elif layouts[desc.name] != label_names:
                logger.warning(
                    f"Skipping query '{query.name}': metric {desc.name} already exported with labels "
                    f"{list(layouts[desc.name])}, got {list(label_names)}"
                )
                continue

            const_values = list(const_labels.values())
            for sample in query.samples():
                family.add_metric(list(sample.label_values) + const_values, sample.value)

        yield from families.values()
