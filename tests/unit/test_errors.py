import pytest

from app.core import errors


@pytest.mark.parametrize("message, expected", [
    ('duplicate key value violates unique constraint "x"', errors.DUPLICATE_ITEM),
    ("insert violates foreign key constraint", errors.INVALID_REFERENCE),
    ('null value in column "name" violates not-null constraint', errors.MISSING_FIELDS),
    ("new row violates row-level security policy", errors.PERMISSION_DENIED),
    ("Connection refused", errors.CONNECTION_ERROR),
    ("relation public.secret_table does not exist", errors.GENERIC_ERROR),
])
def test_generic_error_message(message, expected):
    assert errors.generic_error_message(RuntimeError(message)) == expected


def test_generic_message_never_echoes_backend_text():
    text = errors.generic_error_message(RuntimeError("column vault_secrets.password is broken"))
    assert "vault_secrets" not in text


def test_grant_mutation_error_keeps_resource_id():
    error = errors.GrantMutationError("write failed", "C1")
    assert error.resource_id == "C1"
    assert isinstance(error, errors.MaintlyError)
