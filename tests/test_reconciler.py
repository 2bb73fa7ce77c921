from intake.state.reconciler import Patch, PatchSource, advance_status, merge
from intake.state.record import CaseStatus, FaultAdmission, InjuryDetails
from intake.state.registry import FieldId


def _patch(record, vectors, source=PatchSource.FAST, version=None, **extra):
    return Patch(source=source, version=record.tick() if version is None else version, vectors=vectors, **extra)


def test_shallow_union_keeps_untouched_keys(record):
    merge(record, _patch(record, {"contact": {"full_name": "Jane Roe"}}))
    result = merge(record, _patch(record, {"contact": {"email": "a@b.com"}}))

    assert record.contact.full_name == "Jane Roe"
    assert record.contact.email == "a@b.com"
    assert result.applied == [FieldId.CONTACT_EMAIL]


def test_invalid_values_are_dropped_not_coerced(record):
    result = merge(record, _patch(record, {"contact": {"full_name": "John", "email": "john@example.com"}}))

    assert record.contact.full_name is None
    assert record.contact.email == "john@example.com"
    assert result.rejected == ["contact.full_name"]


def test_fast_path_nulls_do_not_erase(record):
    merge(record, _patch(record, {"contact": {"full_name": "Jane Roe"}}))
    result = merge(record, _patch(record, {"contact": {"full_name": None, "email": None}}))

    assert record.contact.full_name == "Jane Roe"
    assert not result.changed


def test_audit_null_invalidates(record):
    merge(record, _patch(record, {"incident": {"location_jurisdiction": "Austin, TX"}}))
    result = merge(record, _patch(record, {"incident": {"location_jurisdiction": None}}, source=PatchSource.AUDIT))

    assert record.incident.location_jurisdiction is None
    assert result.applied == [FieldId.INCIDENT_LOCATION_JURISDICTION]


def test_fast_path_replaces_composite_whole(record):
    merge(record, _patch(record, {"liability": {"fault_admission": {"status": "Yes", "statement": "Sorry!"}}}))
    merge(record, _patch(record, {"liability": {"fault_admission": {"status": "No"}}}))

    assert record.liability.fault_admission == FaultAdmission(status="No", statement=None)


def test_audit_corrects_composite_member_by_member(record):
    merge(record, _patch(record, {"damages": {"injury_details": {"has_injury": True, "description": None}}}))
    result = merge(
        record,
        _patch(record, {"damages": {"injury_details": {"description": "Broken leg"}}}, source=PatchSource.AUDIT),
    )

    assert record.damages.injury_details == InjuryDetails(has_injury=True, description="Broken leg")
    assert result.applied == [FieldId.DAMAGES_INJURY_DETAILS]


def test_audit_member_rejection_keeps_valid_members(record):
    result = merge(
        record,
        _patch(
            record,
            {"liability": {"fault_admission": {"status": "Probably", "statement": "He waved"}}},
            source=PatchSource.AUDIT,
        ),
    )

    assert record.liability.fault_admission == FaultAdmission(status=None, statement="He waved")
    assert result.rejected == ["liability.fault_admission.status"]


def test_stale_audit_does_not_clobber_newer_write(record):
    audit_version = record.tick()
    merge(record, _patch(record, {"contact": {"email": "new@example.com"}}))

    result = merge(
        record,
        Patch(
            source=PatchSource.AUDIT,
            version=audit_version,
            vectors={"contact": {"email": "old@example.com", "full_name": "Jane Roe"}},
        ),
    )

    assert record.contact.email == "new@example.com"
    assert record.contact.full_name == "Jane Roe"
    assert result.stale == [FieldId.CONTACT_EMAIL]
    assert result.applied == [FieldId.CONTACT_FULL_NAME]


def test_field_versions_follow_the_writing_patch(record):
    patch = _patch(record, {"contact": {"full_name": "Jane Roe"}})
    merge(record, patch)
    assert record.version_of(FieldId.CONTACT_FULL_NAME) == patch.version
    assert record.version_of(FieldId.CONTACT_EMAIL) == 0


def test_unknown_vectors_and_fields_are_reported(record):
    result = merge(record, _patch(record, {"billing": {"plan": "gold"}, "contact": {"nickname": "JJ"}}))
    assert result.unknown == ["billing", "contact.nickname"]
    assert not result.changed


def test_rejected_status_is_sticky(record):
    merge(record, _patch(record, {}, source=PatchSource.SYSTEM, status=CaseStatus.REJECTED, rejection_reason="conflict"))
    result = merge(record, _patch(record, {}, source=PatchSource.SYSTEM, status=CaseStatus.INTAKE))

    assert record.status is CaseStatus.REJECTED
    assert record.rejection_reason == "conflict"
    assert not result.status_changed


def test_qualification_advances_to_intake(record):
    merge(record, _patch(record, {"admin": {"prior_representation": False}}))
    assert not advance_status(record)
    merge(record, _patch(record, {"admin": {"conflict_party": "Richard Miles"}}))
    assert advance_status(record)
    assert record.status is CaseStatus.INTAKE


def test_represented_claimant_never_advances(record):
    merge(record, _patch(record, {"admin": {"prior_representation": True, "conflict_party": "Richard Miles"}}))
    assert not advance_status(record)
    assert record.status is CaseStatus.QUALIFICATION


def test_flat_patch_builds_vectors():
    patch = Patch.from_flat(PatchSource.FAST, 3, {"contact.full_name": "Jane Roe", "admin.insurance_status": True, "bogus": 1})
    assert patch.vectors == {"contact": {"full_name": "Jane Roe"}, "admin": {"insurance_status": True}}
    assert sorted(patch.field_ids()) == ["admin.insurance_status", "contact.full_name"]


def test_confirmed_value_blocks_older_invalidation(record):
    merge(record, _patch(record, {"incident": {"weather_conditions": "Rain"}}))
    older_audit = record.tick()
    newer_audit = record.tick()

    confirm = merge(
        record,
        Patch(source=PatchSource.AUDIT, version=newer_audit, vectors={"incident": {"weather_conditions": "Rain"}}),
    )
    late = merge(
        record,
        Patch(source=PatchSource.AUDIT, version=older_audit, vectors={"incident": {"weather_conditions": None}}),
    )

    assert not confirm.changed
    assert record.version_of(FieldId.INCIDENT_WEATHER_CONDITIONS) == newer_audit
    assert late.stale == [FieldId.INCIDENT_WEATHER_CONDITIONS]
    assert record.incident.weather_conditions == "Rain"


def test_rejected_value_keeps_previous_version(record):
    first = _patch(record, {"contact": {"email": "jane@example.com"}})
    merge(record, first)
    merge(record, _patch(record, {"contact": {"email": "not-an-email"}}))
    assert record.version_of(FieldId.CONTACT_EMAIL) == first.version
