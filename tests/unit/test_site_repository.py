import uuid
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from sites_manager.db import models, schemas
from sites_manager.db.repositories import issues as issue_repo
from sites_manager.db.repositories import sites as site_repo


def _create(db, name="Ministry of Water", issues=None, **fields):
    data = {
        "name_of_agency": name,
        "url": f"https://{name.lower().replace(' ', '-')}.example.gov",
        "province": "Bagmati",
        "district": "Kathmandu",
    }
    data.update(fields)
    return site_repo.create_site(db, schemas.SiteCreate(**data, issues=issues or []))


def _issue(priority="HIGH", types=("SSL_ERROR",), description="Certificate expired"):
    return {"issue_types": list(types), "description": description, "priority": priority}


def test_create_site_without_issues(db_session):
    site = _create(db_session)
    assert site.id is not None
    assert site.has_issues is False
    assert site.issues == []
    assert site.created_at is not None


def test_create_site_with_issues_sets_flag(db_session):
    site = _create(db_session, issues=[_issue(), _issue(priority="LOW", types=("CSS_ERROR", "NOT_FOUND_404"))])
    assert site.has_issues is True
    assert len(site.issues) == 2
    types = sorted(tuple(issue.issue_types) for issue in site.issues)
    assert types == [("CSS_ERROR", "NOT_FOUND_404"), ("SSL_ERROR",)]
    assert all(issue.is_solved is False for issue in site.issues)


def test_issue_types_keep_order_and_drop_duplicates(db_session):
    site = _create(db_session, issues=[_issue(types=("HACKED", "CSS_ERROR", "HACKED"))])
    assert site.issues[0].issue_types == ["HACKED", "CSS_ERROR"]


def test_update_site_fields(db_session):
    site = _create(db_session)
    before = site.updated_at
    updated = site_repo.update_site(
        db_session,
        site.id,
        schemas.SiteUpdate(district="Lalitpur", is_cpanel=True, cpanel_username="admin"),
    )
    assert updated.district == "Lalitpur"
    assert updated.is_cpanel is True
    assert updated.cpanel_username == "admin"
    assert updated.name_of_agency == "Ministry of Water"
    assert updated.updated_at >= before


def test_update_site_null_does_not_clear_required_fields(db_session):
    site = _create(db_session)
    updated = site_repo.update_site(db_session, site.id, schemas.SiteUpdate(name_of_agency=None, vm_ip=""))
    assert updated.name_of_agency == "Ministry of Water"
    assert updated.vm_ip is None


def test_update_missing_site_returns_none(db_session):
    assert site_repo.update_site(db_session, uuid.uuid4(), schemas.SiteUpdate(district="X")) is None


def test_update_site_syncs_issues(db_session):
    site = _create(db_session, issues=[_issue(description="keep"), _issue(description="drop")])
    keep = next(issue for issue in site.issues if issue.description == "keep")
    drop = next(issue for issue in site.issues if issue.description == "drop")
    issue_repo.solve_issue(db_session, keep.id, schemas.IssueSolve(who_solved="Sita", how_solved="Renewed"))
    drop_id = drop.id
    keep_id = keep.id

    updated = site_repo.update_site(
        db_session,
        site.id,
        schemas.SiteUpdate(
            issues=[
                {"id": str(keep_id), "issue_types": ["SSL_ERROR", "HACKED"], "description": "kept", "priority": "CRITICAL", "is_solved": True},
                {"issue_types": ["DATABASE_ERROR"], "description": "new", "priority": "MEDIUM"},
            ]
        ),
    )
    db_session.expire_all()
    descriptions = sorted(issue.description for issue in updated.issues)
    assert descriptions == ["kept", "new"]
    kept = db_session.get(models.Issue, keep_id)
    assert kept.issue_types == ["SSL_ERROR", "HACKED"]
    assert kept.priority == "CRITICAL"
    # Solutions of issues updated in place survive
    assert len(kept.solutions) == 1
    assert db_session.get(models.Issue, drop_id) is None
    # The new issue is unsolved
    assert updated.has_issues is True


def test_update_site_empty_issue_list_clears_issues_and_flag(db_session):
    site = _create(db_session, issues=[_issue()])
    updated = site_repo.update_site(db_session, site.id, schemas.SiteUpdate(issues=[]))
    assert updated.issues == []
    assert updated.has_issues is False
    assert db_session.query(models.Issue).count() == 0


def test_update_site_unknown_issue_id_creates_issue(db_session):
    site = _create(db_session)
    stray = uuid.uuid4()
    updated = site_repo.update_site(
        db_session,
        site.id,
        schemas.SiteUpdate(issues=[{"id": str(stray), **_issue()}]),
    )
    assert len(updated.issues) == 1
    assert updated.issues[0].id != stray
    assert updated.has_issues is True


def test_update_backup_status(db_session):
    site = _create(db_session)
    when = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    updated = site_repo.update_backup_status(
        db_session,
        site.id,
        schemas.BackupStatusUpdate(has_taken_manual_backup=True, last_manual_backup_date=when, backup_location="TELEGRAM"),
    )
    assert updated.has_taken_manual_backup is True
    assert updated.backup_location == "TELEGRAM"
    assert updated.last_manual_backup_date.replace(tzinfo=timezone.utc) == when


def test_bulk_update_returns_rows_changed(db_session):
    first = _create(db_session, name="A")
    second = _create(db_session, name="B")
    untouched = _create(db_session, name="C")
    count = site_repo.bulk_update_sites(
        db_session,
        [first.id, second.id, uuid.uuid4()],
        schemas.BackupUpdates(has_taken_manual_backup=True, backup_location="AWS"),
    )
    assert count == 2
    db_session.expire_all()
    assert db_session.get(models.Site, first.id).backup_location == "AWS"
    assert db_session.get(models.Site, second.id).has_taken_manual_backup is True
    assert db_session.get(models.Site, untouched.id).has_taken_manual_backup is False


def test_delete_site_cascades(db_session):
    site = _create(db_session, issues=[_issue()])
    issue_id = site.issues[0].id
    issue_repo.solve_issue(db_session, issue_id, schemas.IssueSolve(who_solved="Hari", how_solved="Restarted"))
    assert site_repo.delete_site(db_session, site.id) is True
    assert db_session.query(models.Site).count() == 0
    assert db_session.query(models.Issue).count() == 0
    assert db_session.query(models.Solution).count() == 0
    assert db_session.query(models.IssueTypeLink).count() == 0


def test_delete_missing_site(db_session):
    assert site_repo.delete_site(db_session, uuid.uuid4()) is False


def test_list_sites_filters_and_search(db_session):
    _create(db_session, name="Water Board", province="Bagmati", is_vm=True, vm_ip="10.0.0.7")
    _create(db_session, name="Forest Office", province="Koshi", district="Morang", is_cpanel=True, cpanel_username="forestadmin")
    _create(db_session, name="Water Supply Koshi", province="Koshi", district="Sunsari")

    items, total = site_repo.list_sites(db_session, province="Koshi")
    assert total == 2
    assert {site.name_of_agency for site in items} == {"Forest Office", "Water Supply Koshi"}

    items, total = site_repo.list_sites(db_session, search="water")
    assert total == 2

    items, total = site_repo.list_sites(db_session, search="FORESTADMIN")
    assert [site.name_of_agency for site in items] == ["Forest Office"]

    items, total = site_repo.list_sites(db_session, search="10.0.0")
    assert [site.name_of_agency for site in items] == ["Water Board"]

    items, total = site_repo.list_sites(db_session, province="Koshi", is_cpanel=False)
    assert [site.name_of_agency for site in items] == ["Water Supply Koshi"]


def test_list_sites_sort_and_paginate(db_session):
    for name in ["Charlie", "Alpha", "Bravo"]:
        _create(db_session, name=name)
    items, total = site_repo.list_sites(db_session, sort_by="name_of_agency", sort_order="asc", skip=0, limit=2)
    assert total == 3
    assert [site.name_of_agency for site in items] == ["Alpha", "Bravo"]
    items, _ = site_repo.list_sites(db_session, sort_by="name_of_agency", sort_order="asc", skip=2, limit=2)
    assert [site.name_of_agency for site in items] == ["Charlie"]
    items, _ = site_repo.list_sites(db_session, sort_by="name_of_agency", sort_order="desc", limit=1)
    assert items[0].name_of_agency == "Charlie"


def test_list_sites_has_issues_filter(db_session):
    _create(db_session, name="Broken", issues=[_issue()])
    _create(db_session, name="Fine")
    items, total = site_repo.list_sites(db_session, has_issues=True)
    assert total == 1
    assert items[0].name_of_agency == "Broken"


def test_issue_counts_exclude_solved_by_default(db_session):
    site = _create(
        db_session,
        name="Counted",
        issues=[_issue(priority="CRITICAL"), _issue(priority="LOW"), _issue(priority="CRITICAL", description="fixed")],
    )
    _create(db_session, name="Empty")
    fixed = next(issue for issue in site.issues if issue.description == "fixed")
    issue_repo.solve_issue(db_session, fixed.id, schemas.IssueSolve(who_solved="Gita", how_solved="Patched"))

    items, total = site_repo.list_sites_with_issue_counts(db_session)
    assert total == 2
    by_name = {item.name_of_agency: item for item in items}
    assert by_name["Counted"].issue_count == 2
    assert by_name["Counted"].solved_issue_count == 0
    assert by_name["Counted"].critical_issue_count == 1
    assert by_name["Empty"].issue_count == 0

    items, _ = site_repo.list_sites_with_issue_counts(db_session, include_solved=True)
    by_name = {item.name_of_agency: item for item in items}
    assert by_name["Counted"].issue_count == 3
    assert by_name["Counted"].solved_issue_count == 1
    assert by_name["Counted"].critical_issue_count == 2


def test_issue_counts_respect_site_filters(db_session):
    _create(db_session, name="North", province="Koshi", issues=[_issue()])
    _create(db_session, name="South", province="Madhesh")
    items, total = site_repo.list_sites_with_issue_counts(db_session, province="Koshi")
    assert total == 1
    assert items[0].name_of_agency == "North"
    assert items[0].issue_count == 1


def test_update_backup_status_rolls_back_on_db_error(db_session):
    site = _create(db_session)
    with patch.object(db_session, "commit", side_effect=SQLAlchemyError("boom")):
        with pytest.raises(RuntimeError, match="Failed to update backup status"):
            site_repo.update_backup_status(
                db_session, site.id, schemas.BackupStatusUpdate(has_taken_manual_backup=True)
            )
    db_session.expire_all()
    assert db_session.get(models.Site, site.id).has_taken_manual_backup is False


def test_list_sites_breaks_sort_ties_by_id(db_session):
    ids = [_create(db_session, name=f"Office {n}").id for n in range(6)]
    seen = []
    for skip in (0, 2, 4):
        items, total = site_repo.list_sites(
            db_session, sort_by="has_issues", sort_order="desc", skip=skip, limit=2
        )
        assert total == 6
        seen.extend(site.id for site in items)
    assert seen == sorted(ids)
