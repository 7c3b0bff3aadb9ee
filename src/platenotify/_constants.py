"""Constants for platenotify."""

from __future__ import annotations

from platenotify.models.plate import PlateRecord

#: Demo registry used when storage is empty and seeding is enabled.
DEMO_PLATES: tuple[PlateRecord, ...] = (
    PlateRecord(plate_number="ABC123", child_name="Emma Johnson", notes="Pickup at east entrance"),
    PlateRecord(plate_number="XYZ789", child_name="Noah Williams"),
    PlateRecord(plate_number="DEF456", child_name="Olivia Davis", notes="Has asthma medication in backpack"),
)
