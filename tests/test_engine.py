"""
Tests de las rutinas de movimientos de stock.

Cubren:
- Despacho de rutinas y forma del resultado (single / multi / none)
- Reglas de negocio al crear: signo y escala de la cantidad, motivo del ajuste, cuenta del producto, stock
- Saldo acumulado por producto en orden de creación
- Reversión: cantidad compensatoria, enlace, doble reversión y reversión de una reversión
- Límite transaccional: una rutina fallida no deja filas
"""

import pytest
from sqlalchemy import func, select

from stock_movements.engine.executor import (
    BUSINESS_RULE_ERROR,
    NOT_FOUND_ERROR,
    UNKNOWN_ROUTINE_ERROR,
    ExpectedReturn,
    RoutineError,
    RoutineExecutor,
    registered_routines,
)
from stock_movements.engine.procedures import SP_CREATE, SP_GET, SP_LIST, SP_REVERSE
from stock_movements.models import MovementType, StockMovement
from stock_movements.repositories.stock_movement_repository import signed_quantity


@pytest.fixture
def executor(session):
    return RoutineExecutor(session)


def create(executor, product_id=10, movement_type=MovementType.ENTRY, quantity=5.0, account_id=1, user_id=1, **extra):
    params = {
        "idAccount": account_id,
        "idUser": user_id,
        "idProduct": product_id,
        "movementType": int(movement_type),
        "quantity": quantity,
    }
    params.update(extra)
    row = executor.execute(SP_CREATE, params, ExpectedReturn.SINGLE)
    return row["idStockMovement"]


def reverse(executor, movement_id, reason="correction", account_id=1, user_id=1):
    row = executor.execute(
        SP_REVERSE,
        {"idAccount": account_id, "idUser": user_id, "idStockMovement": movement_id, "reason": reason},
        ExpectedReturn.SINGLE,
    )
    return row["idReversalMovement"]


def get(executor, movement_id, account_id=1):
    return executor.execute(
        SP_GET, {"idAccount": account_id, "idStockMovement": movement_id}, ExpectedReturn.SINGLE
    )


def list_page(executor, account_id=1, **filters):
    params = {"idAccount": account_id}
    params.update(filters)
    return executor.execute(SP_LIST, params, ExpectedReturn.MULTI)


def count_movements(session):
    return session.scalar(select(func.count()).select_from(StockMovement))


def test_routines_registered():
    assert set(registered_routines()) >= {SP_CREATE, SP_LIST, SP_GET, SP_REVERSE}


def test_unknown_routine(executor):
    with pytest.raises(RoutineError) as exc:
        executor.execute("functional.spDoesNotExist", {}, ExpectedReturn.NONE)
    assert exc.value.number == UNKNOWN_ROUTINE_ERROR


def test_expected_none_returns_nothing(executor):
    result = executor.execute(
        SP_CREATE,
        {"idAccount": 1, "idUser": 1, "idProduct": 10, "movementType": 1, "quantity": 2},
        ExpectedReturn.NONE,
    )
    assert result is None


@pytest.mark.parametrize(
    "movement_type, quantity, expected",
    [
        (MovementType.CREATION, 4, 4),
        (MovementType.ENTRY, 4, 4),
        (MovementType.EXIT, 4, -4),
        (MovementType.DELETION, 4, -4),
        (MovementType.ADJUSTMENT, -4, -4),
        (MovementType.ADJUSTMENT, 4, 4),
    ],
)
def test_signed_quantity(movement_type, quantity, expected):
    assert signed_quantity(int(movement_type), quantity) == expected


def test_create_then_get(executor):
    movement_id = create(executor, quantity=5, lot="L-1", referenceDocument="NF-123")

    row = get(executor, movement_id)

    assert row["idStockMovement"] == movement_id
    assert row["accountId"] == 1
    assert row["productId"] == 10
    assert row["productName"] == "Widget"
    assert row["movementType"] == 1
    assert row["movementTypeName"] == "Entry"
    assert row["quantity"] == 5
    assert row["lot"] == "L-1"
    assert row["referenceDocument"] == "NF-123"
    assert row["isReversal"] is False
    assert row["originalMovementId"] is None
    assert row["hasBeenReversed"] is False


def test_get_other_account_returns_nothing(executor):
    movement_id = create(executor)
    assert get(executor, movement_id, account_id=2) is None
    assert get(executor, 999_999) is None


def test_create_rejects_product_of_other_account(executor, session):
    with pytest.raises(RoutineError) as exc:
        create(executor, product_id=20, account_id=1)
    assert exc.value.number == BUSINESS_RULE_ERROR
    assert count_movements(session) == 0


@pytest.mark.parametrize(
    "movement_type, quantity",
    [(MovementType.ENTRY, 0), (MovementType.ENTRY, -3), (MovementType.ADJUSTMENT, 0)],
)
def test_create_rejects_invalid_quantity(executor, movement_type, quantity):
    with pytest.raises(RoutineError) as exc:
        create(executor, movement_type=movement_type, quantity=quantity, reason="count")
    assert exc.value.number == BUSINESS_RULE_ERROR


@pytest.mark.parametrize("quantity", [0.00001, 1e10, 2.00005])
def test_create_rejects_quantity_the_column_cannot_hold(executor, session, quantity):
    with pytest.raises(RoutineError) as exc:
        create(executor, quantity=quantity)
    assert exc.value.number == BUSINESS_RULE_ERROR
    assert count_movements(session) == 0


def test_create_rejects_adjustment_without_reason(executor):
    with pytest.raises(RoutineError) as exc:
        create(executor, movement_type=MovementType.ADJUSTMENT, quantity=2)
    assert exc.value.number == BUSINESS_RULE_ERROR


def test_exit_cannot_exceed_balance(executor, session):
    create(executor, quantity=3)
    with pytest.raises(RoutineError) as exc:
        create(executor, movement_type=MovementType.EXIT, quantity=4)
    assert exc.value.number == BUSINESS_RULE_ERROR
    assert count_movements(session) == 1


def test_running_balance_follows_creation_order(executor):
    create(executor, movement_type=MovementType.CREATION, quantity=10)
    create(executor, movement_type=MovementType.EXIT, quantity=3)
    create(executor, product_id=11, quantity=100)
    create(executor, movement_type=MovementType.ADJUSTMENT, quantity=-2, reason="damaged")
    create(executor, movement_type=MovementType.ENTRY, quantity=5)

    movements, pagination = list_page(executor, idProduct=10, sortOrder="date_asc")

    assert [m["runningBalance"] for m in movements] == [10, 7, 5, 10]
    assert pagination[0]["totalRecords"] == 4


def test_running_balance_ignores_filters(executor):
    create(executor, quantity=10)
    create(executor, movement_type=MovementType.EXIT, quantity=4)

    movements, _ = list_page(executor, movementType=int(MovementType.EXIT))

    assert len(movements) == 1
    assert movements[0]["runningBalance"] == 6


def test_reverse_entry(executor):
    movement_id = create(executor, quantity=5, lot="L-9")

    reversal_id = reverse(executor, movement_id)

    assert reversal_id != movement_id
    original = get(executor, movement_id)
    reversal = get(executor, reversal_id)
    assert original["hasBeenReversed"] is True
    assert reversal["isReversal"] is True
    assert reversal["originalMovementId"] == movement_id
    assert reversal["movementType"] == int(MovementType.ADJUSTMENT)
    assert reversal["quantity"] == -5
    assert reversal["reason"] == "correction"
    assert reversal["lot"] == "L-9"
    assert reversal["hasBeenReversed"] is False


def test_reverse_restores_balance(executor):
    create(executor, quantity=10)
    exit_id = create(executor, movement_type=MovementType.EXIT, quantity=4)

    reverse(executor, exit_id)

    movements, _ = list_page(executor, sortOrder="date_asc")
    assert movements[-1]["runningBalance"] == 10
    assert movements[-1]["quantity"] == 4


def test_reverse_twice_is_rejected(executor, session):
    movement_id = create(executor)
    reverse(executor, movement_id)

    with pytest.raises(RoutineError) as exc:
        reverse(executor, movement_id)

    assert exc.value.number == BUSINESS_RULE_ERROR
    assert "already been reversed" in exc.value.message
    assert count_movements(session) == 2


def test_reversal_cannot_be_reversed(executor):
    reversal_id = reverse(executor, create(executor))

    with pytest.raises(RoutineError) as exc:
        reverse(executor, reversal_id)

    assert exc.value.number == BUSINESS_RULE_ERROR


def test_reverse_rejected_when_stock_already_consumed(executor):
    entry_id = create(executor, quantity=5)
    create(executor, movement_type=MovementType.EXIT, quantity=5)

    with pytest.raises(RoutineError) as exc:
        reverse(executor, entry_id)

    assert exc.value.number == BUSINESS_RULE_ERROR


def test_reverse_unknown_or_foreign_movement(executor):
    movement_id = create(executor)

    for account_id, target in ((2, movement_id), (1, 999_999)):
        with pytest.raises(RoutineError) as exc:
            reverse(executor, target, account_id=account_id)
        assert exc.value.number == NOT_FOUND_ERROR

    assert get(executor, movement_id)["hasBeenReversed"] is False
