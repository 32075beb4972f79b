from factoryline.extensions import db
from factoryline.models import RawMaterial, User


def test_create_user_prints_token(app, runner):
    result = runner.invoke(args=['create-user', 'lead@example.com', '--admin'])

    assert result.exit_code == 0
    with app.app_context():
        user = User.query.filter_by(email='lead@example.com').one()
        assert user.is_admin is True
        assert user.api_token in result.output


def test_create_user_rejects_duplicates(app, runner):
    runner.invoke(args=['create-user', 'lead@example.com'])
    result = runner.invoke(args=['create-user', 'lead@example.com'])
    assert result.exit_code != 0
    assert 'already exists' in result.output


def test_check_ledger_passes_when_in_sync(plant, runner):
    result = runner.invoke(args=['check-ledger'])
    assert result.exit_code == 0
    assert 'in sync' in result.output


def test_check_ledger_fails_on_drift(app, plant, runner):
    with app.app_context():
        db.session.get(RawMaterial, plant.material_id).current_stock = 3
        db.session.commit()

    result = runner.invoke(args=['check-ledger'])

    assert result.exit_code != 0
    assert 'matA' in result.output
    assert 'out of sync' in result.output
