"""
CLI command tests (flask materials / workflows).
"""

from backoffice.models import Material


def test_seed_materials_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["materials", "seed"])
    assert result.exit_code == 0
    assert "Seeded 4" in result.output

    result = runner.invoke(args=["materials", "seed"])
    assert "Seeded 0" in result.output
    assert db_session.query(Material).count() == 4


def test_adjust_clamps(app, db_session, rice):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["materials", "adjust", rice.id, "--", "-50"])
    assert result.exit_code == 0
    assert "quantity=0 applied=-10" in result.output


def test_workflows_list_empty(app, db_session):
    result = app.test_cli_runner().invoke(args=["workflows", "list"])
    assert "No workflow runs found" in result.output


def test_resume_unknown_run(app, db_session):
    result = app.test_cli_runner().invoke(args=["workflows", "resume", "missing"])
    assert "FAIL" in result.output
