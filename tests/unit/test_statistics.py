from datetime import timedelta

import pytest

from sites_manager.db import schemas
from sites_manager.db.repositories import issues as issue_repo
from sites_manager.db.repositories import sites as site_repo
from sites_manager.db.repositories import solutions as solution_repo
from sites_manager.db.repositories import statistics as stats_repo


def _site(db, name, province, district, issues=(), **fields):
    return site_repo.create_site(
        db,
        schemas.SiteCreate(
            name_of_agency=name,
            url=f"https://{name.lower().replace(' ', '-')}.example.gov",
            province=province,
            district=district,
            issues=list(issues),
            **fields,
        ),
    )


def _issue(priority, *types):
    return {"issue_types": list(types), "description": f"{priority} issue", "priority": priority}


@pytest.fixture
def seeded(db_session):
    water = _site(
        db_session,
        "Water Board",
        "Bagmati",
        "Kathmandu",
        issues=[_issue("CRITICAL", "HACKED", "SSL_ERROR"), _issue("LOW", "CSS_ERROR")],
        has_taken_manual_backup=True,
        backup_location="AWS",
        is_cpanel=True,
    )
    forest = _site(
        db_session,
        "Forest Office",
        "Koshi",
        "Morang",
        issues=[_issue("HIGH", "SSL_ERROR")],
        is_vm=True,
    )
    _site(db_session, "Post Office", "Koshi", "Jhapa", backup_location="LOCAL")
    return water, forest


def test_site_statistics(db_session, seeded):
    stats = stats_repo.site_statistics(db_session)
    assert stats["total_sites"] == 3
    assert stats["sites_with_issues"] == 2
    assert stats["sites_with_backup"] == 1
    assert stats["sites_by_province"] == {"Bagmati": 1, "Koshi": 2}
    assert stats["sites_by_district"] == {"Kathmandu": 1, "Morang": 1, "Jhapa": 1}
    assert stats["backup_locations"] == {"AWS": 1, "LOCAL": 1}


def test_site_statistics_filtered_by_province(db_session, seeded):
    stats = stats_repo.site_statistics(db_session, province="Koshi")
    assert stats["total_sites"] == 2
    assert stats["sites_by_province"] == {"Koshi": 2}
    assert stats["backup_locations"] == {"LOCAL": 1}


def test_issue_statistics(db_session, seeded):
    water, forest = seeded
    stats = stats_repo.issue_statistics(db_session)
    assert stats["total_issues"] == 3
    assert stats["solved_issues"] == 0
    assert stats["issues_by_type"] == {"HACKED": 1, "SSL_ERROR": 2, "CSS_ERROR": 1}
    assert stats["issues_by_priority"] == {"CRITICAL": 1, "LOW": 1, "HIGH": 1}
    assert stats["issues_by_site"] == {"Water Board": 2, "Forest Office": 1}
    assert stats["average_resolution_time"] == 0


def test_issue_statistics_filters(db_session, seeded):
    water, _forest = seeded
    stats = stats_repo.issue_statistics(db_session, site_id=water.id, issue_types=["SSL_ERROR"])
    assert stats["total_issues"] == 1
    # Every type of a matching issue is counted
    assert stats["issues_by_type"] == {"HACKED": 1, "SSL_ERROR": 1}


def test_average_resolution_time_in_days(db_session, seeded):
    _water, forest = seeded
    issue = forest.issues[0]
    solved_at = issue.created_at + timedelta(days=2)
    issue_repo.solve_issue(db_session, issue.id, schemas.IssueSolve(who_solved="Ram", how_solved="Fixed", solved_at=solved_at))
    stats = stats_repo.issue_statistics(db_session)
    assert stats["solved_issues"] == 1
    assert stats["average_resolution_time"] == pytest.approx(2.0, abs=1e-6)


def test_site_summary(db_session, seeded):
    summary = stats_repo.site_summary(db_session)
    assert summary == {
        "total_sites": 3,
        "sites_with_issues": 2,
        "sites_with_backup": 1,
        "cpanel_sites": 1,
        "vm_sites": 1,
    }


def test_lookups(db_session, seeded):
    assert stats_repo.list_provinces(db_session) == ["Bagmati", "Koshi"]
    assert stats_repo.list_districts(db_session) == ["Jhapa", "Kathmandu", "Morang"]
    assert stats_repo.list_districts(db_session, province="Koshi") == ["Jhapa", "Morang"]


def test_solvers_are_distinct_and_sorted(db_session, seeded):
    water, forest = seeded
    for issue, who in [(forest.issues[0], "Sita"), (water.issues[0], "Ram"), (water.issues[1], "Sita")]:
        issue_repo.solve_issue(db_session, issue.id, schemas.IssueSolve(who_solved=who, how_solved="Fixed"))
    assert solution_repo.list_solvers(db_session) == ["Ram", "Sita"]
