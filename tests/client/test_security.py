import pytest

from popauth.client.models.errors import StateMismatchError
from popauth.client.services.security import generate_state, validate_state


class TestState:
    def test_generate_state_is_random_and_url_safe(self):
        # Act
        first, second = generate_state(), generate_state()

        # Assert
        assert len(first) == 32
        assert first != second

    def test_validate_state_accepts_equal_values(self):
        validate_state("abc", "abc")

    def test_validate_state_rejects_mismatch_and_missing(self):
        with pytest.raises(StateMismatchError):
            validate_state("abc", "def")
        with pytest.raises(StateMismatchError):
            validate_state(None, "abc")
