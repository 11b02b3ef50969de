from __future__ import annotations

import pytest

from bulkdata.domain.bulk_pipeline import ResolutionInfoAggregator
from bulkdata.domain.model import FlaggedEntity, ResolutionInfo


def test_totals_count_entities_per_record() -> None:
    aggregator = ResolutionInfoAggregator(capacity=10)

    aggregator.fold(ResolutionInfo(affected_entities=(10, 11)))
    aggregator.fold(ResolutionInfo(affected_entities=(11, 12)))

    assert aggregator.affected_total == 4
    assert len(aggregator.snapshot()) == 2
    assert aggregator.dropped_count == 0


def test_entries_beyond_capacity_keep_counting() -> None:
    aggregator = ResolutionInfoAggregator(capacity=2)
    infos = [
        ResolutionInfo(
            affected_entities=(index,),
            flagged_entities=(FlaggedEntity(100 + index),),
        )
        for index in range(5)
    ]

    for info in infos:
        aggregator.fold(info)

    assert aggregator.snapshot() == tuple(infos[:2])
    assert len(aggregator) == 2
    assert aggregator.folded_count == 5
    assert aggregator.dropped_count == 3
    assert aggregator.affected_total == 5
    assert aggregator.flagged_total == 5


def test_zero_capacity_retains_nothing() -> None:
    aggregator = ResolutionInfoAggregator(capacity=0)

    aggregator.fold(ResolutionInfo(affected_entities=(1, 2, 2)))

    assert aggregator.snapshot() == ()
    assert aggregator.affected_total == 2


def test_negative_capacity_is_rejected() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        ResolutionInfoAggregator(capacity=-1)
