import pytest

from services.exceptions import OperatorAbortError
from services.prompt_service import prompt_operator


def test_prompt_strips_answer(capsys):
    assert prompt_operator("Name?", input_fn=lambda: "  base.zip \n") == "base.zip"
    assert capsys.readouterr().out == "Name?\n"


def test_prompt_eof_aborts():
    def closed() -> str:
        raise EOFError

    with pytest.raises(OperatorAbortError):
        prompt_operator("Name?", input_fn=closed)
