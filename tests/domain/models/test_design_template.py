import pytest
from app.domain.models.design_template import DesignTemplate
from app.domain.models.user import User
from pydantic import ValidationError

FIELDS = {
    "name": "Ocean Blue",
    "background_color": "#e3f2fd",
    "text_color": "#0d47a1",
    "border_style": "1px solid #90caf9",
    "shadow_style": "0 2px 4px rgba(13,71,161,0.1)",
    "preview": "🌊",
}


@pytest.mark.parametrize("color", ["#fff", "#A1B2C3", " #abc "])
def test_accepts_hex_colors(color) -> None:
    template = DesignTemplate(**{**FIELDS, "background_color": color})

    assert template.background_color == color.strip()


@pytest.mark.parametrize("color", ["blue", "#abcd", "fff", "#ggg"])
def test_rejects_invalid_colors(color) -> None:
    with pytest.raises(ValidationError):
        DesignTemplate(**{**FIELDS, "text_color": color})


def test_user_email_is_lowercased_and_verification_expiry() -> None:
    user = User(username=" alice ", email="Alice@Example.COM")

    assert user.username == "alice"
    assert user.email == "alice@example.com"
    assert user.verification_expired() is True
