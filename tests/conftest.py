from __future__ import annotations

from datetime import datetime, timezone

import matplotlib
import pytest

matplotlib.use("Agg")

from lineagechart.model.forest import build_forest
from lineagechart.model.records import ModelRecord
from lineagechart.model.settings import ChartSettings, GroupRule, YBand


def make_record(name, parent=None, date="2020-01-01", publisher="Acme", citations=0, **extra) -> ModelRecord:
    return ModelRecord(
        name=name,
        predecessor_name=parent,
        publish_date=datetime.strptime(date, "%Y-%m-%d").replace(tzinfo=timezone.utc),
        publisher=publisher,
        num_citations=citations,
        extra=extra,
    )


@pytest.fixture
def chain_forest():
    """Root A, child B of A, child C of B."""
    return build_forest([
        make_record("A", date="2018-01-01"),
        make_record("B", parent="A", date="2019-06-01"),
        make_record("C", parent="B", date="2020-01-01"),
    ])


@pytest.fixture
def chain_settings():
    return ChartSettings(
        groups=(GroupRule(name="primary", members=("A",), band=YBand(start=45.0), hard_anchor=True),),
    )


@pytest.fixture
def llm_forest():
    return build_forest([
        make_record("Transformer", date="2017-06-12", publisher="Google", citations=95000),
        make_record("GPT", parent="Transformer", date="2018-06-11", publisher="OpenAI", citations=9000),
        make_record("BERT", parent="Transformer", date="2018-10-11", publisher="Google", citations=80000),
        make_record("T5", parent="Transformer", date="2019-10-23", publisher="Google"),
        make_record("PaLM", parent="Transformer", date="2022-04-05", publisher="Google"),
        make_record("GPT-2", parent="GPT", date="2019-02-14", publisher="OpenAI"),
        make_record("GPT-3", parent="GPT-2", date="2020-05-28", publisher="OpenAI"),
        make_record("BLOOM", parent="GPT-3", date="2022-07-11", publisher="BigScience"),
        make_record("bloomz", parent="BLOOM", date="2022-11-03", publisher="BigScience"),
        make_record("RoBERTa", parent="BERT", date="2019-07-26", publisher="Meta"),
        make_record("Flan-T5", parent="T5", date="2022-10-20", publisher="Google"),
    ])
