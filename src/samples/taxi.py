"""Taxi fare regression."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.records import column_field, record_schema
from ingest.tabular_source import TabularSource
from ingest.text_loader import load_text
from pipeline.composition import Pipeline
from trainers.regression import FastTreeRegressionTrainer
from transforms.column_ops import Concatenate, CopyColumn
from transforms.one_hot import OneHotEncoding


@dataclass(frozen=True)
class TaxiTrip:
    vendor_id: str | None = column_field("VendorId")
    rate_code: str | None = column_field("RateCode")
    passenger_count: float | None = column_field("PassengerCount")
    trip_time: float | None = column_field("TripTime")
    trip_distance: float | None = column_field("TripDistance")
    payment_type: str | None = column_field("PaymentType")
    fare_amount: float | None = column_field("FareAmount")


@dataclass(frozen=True)
class TaxiTripFarePrediction:
    fare_amount: float | None = column_field("Score")


TAXI_SCHEMA = record_schema(TaxiTrip)

# Observed fare for this trip is 15.5.
SAMPLE_TRIP = TaxiTrip(
    vendor_id="VTS",
    rate_code="1",
    passenger_count=1,
    trip_time=1140,
    trip_distance=3.75,
    payment_type="CRD",
    fare_amount=0,
)


def load(path: str | Path) -> TabularSource:
    """Load a comma-separated trip file with a header row."""
    return load_text(path, TAXI_SCHEMA, has_header=True, delimiter=",")


def build_pipeline() -> Pipeline:
    """One-hot encode the categorical fields and fit boosted trees on the fare."""
    return Pipeline.of(
        CopyColumn(output_column="Label", input_column="FareAmount"),
        OneHotEncoding(output_column="VendorIdEncoded", input_column="VendorId"),
        OneHotEncoding(output_column="RateCodeEncoded", input_column="RateCode"),
        OneHotEncoding(output_column="PaymentTypeEncoded", input_column="PaymentType"),
        Concatenate.of(
            "Features",
            "VendorIdEncoded",
            "RateCodeEncoded",
            "PassengerCount",
            "TripDistance",
            "PaymentTypeEncoded",
        ),
    ).with_trainer(FastTreeRegressionTrainer())
