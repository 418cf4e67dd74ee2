from vetclinic.models import Owner, Ownership, Pet, Visit


def test_seed_demo_creates_shared_pet(app, clinic):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-demo"])
    assert result.exit_code == 0, result.output
    assert "Seed done" in result.output

    assert Owner.query.count() == 2
    michi = Pet.query.filter_by(name="Michi").one()
    assert len(clinic.owner_ids_for_pet(michi.id)) == 2
    assert Visit.query.count() == 2


def test_seed_bulk_then_purge(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-bulk", "--owners", "5", "--visits-per-pet-max", "1"])
    assert result.exit_code == 0, result.output
    assert Owner.query.count() == 5
    assert Pet.query.count() >= 5
    assert Ownership.query.count() >= Pet.query.count()

    result = runner.invoke(args=["purge-data"])
    assert result.exit_code == 0
    assert Pet.query.count() == 0
    assert Ownership.query.count() == 0


def test_reset_db_needs_force(app, sample_data):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["reset-db"])
    assert "--force" in result.output
    assert Owner.query.count() == 2
