import pytest

from codestate.cli.helpers import build_context


@pytest.fixture
def app(fake_terminal):
    """Application context over the isolated home, with a recording terminal."""
    return build_context(terminal=fake_terminal)
