"""Hypothesis strategies for Crossflow change events.

Provides strategies for status values, record snapshots, and inserted /
updated ChangeEvents on the business_trips entity.
"""

from hypothesis import strategies as st

from crossflow.models.events import ChangeEvent

statuses = st.sampled_from(["pending", "approved", "rejected", "completed", "cancelled"])

record_ids = st.text(
    min_size=1,
    max_size=12,
    alphabet=st.characters(whitelist_categories=("L", "N")),
)

trip_records = st.fixed_dictionaries(
    {"id": record_ids, "status": statuses},
    optional={
        "user_id": st.sampled_from(["u1", "u2", "u3"]),
        "destination": st.text(max_size=30),
    },
)


@st.composite
def trip_updates(draw, previous_status=statuses, new_status=statuses):
    """UPDATED business_trips events with independently drawn statuses."""
    previous = draw(trip_records)
    previous["status"] = draw(previous_status)
    new = dict(previous)
    new["status"] = draw(new_status)
    return ChangeEvent.updated("business_trips", new, previous)


trip_inserts = trip_records.map(lambda r: ChangeEvent.inserted("business_trips", r))

any_trip_event = st.one_of(trip_updates(), trip_inserts)
