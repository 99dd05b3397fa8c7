import main
from exactcalc import MathEngine
from exactcalc.Rational import Rational


def test_input_lines_are_evaluated_in_order(capsys):
    session = main.Session(persist=False)
    assert main.run_input(session, "1+1; $x = 2; $x * 3;") == 0
    assert capsys.readouterr().out.splitlines() == ["= 2", "$x = 2", "= 6"]


def test_input_failure_sets_exit_code(capsys):
    session = main.Session(persist=False)
    assert main.run_input(session, "1/0; 2") == 1
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("Error 3003")
    assert lines[1] == "= 2"


def test_commands_in_input(capsys):
    session = main.Session(persist=False)
    main.run_input(session, "/fractional true; 1/3; /p 3; sqrt(2)")
    assert capsys.readouterr().out.splitlines() == ["Done", "= 1/3", "Done", "≈ 1.414"]


def test_command_errors_are_printed():
    session = main.Session(persist=False)
    output, failed = session.run_line("/nope")
    assert failed
    assert output.startswith("Error 6002")


def test_variables_survive_sessions():
    first = main.Session(persist=True)
    first.run_line("$x = 1/3")
    second = main.Session(persist=True)
    assert second.environment.get("x") == Rational(1, 3)


def test_no_db_session_does_not_save():
    main.Session(persist=False).run_line("$x = 1")
    assert main.Session(persist=True).environment.get("x") is None


def test_precision_argument():
    session = main.Session(persist=False, precision=5)
    assert session.run_line("sqrt(2)")[0] == "≈ 1.41421"


def test_main_with_input(capsys):
    assert main.main(["--no-db", "-i", "2^10"]) == 0
    assert capsys.readouterr().out.strip() == "= 1024"


def test_main_rejects_bad_precision(capsys):
    assert main.main(["--no-db", "-p", "0", "-i", "1"]) == 2
    assert "Error 5001" in capsys.readouterr().err


def test_crash_in_worker_thread_is_reported(monkeypatch):
    session = main.Session(persist=False)

    def crash(line, cancel_token=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(session, "run_line", crash)
    outcome = main.evaluate_in_thread(session, "1+1", MathEngine.CancellationToken(), {})
    output, failed = outcome["result"]
    assert failed
    assert output.startswith("Error 9999")
    assert "boom" in output


def test_radix_argument(capsys):
    assert main.main(["--no-db", "-r", "16", "-i", "ff+1"]) == 0
    assert capsys.readouterr().out.strip() == "= 100"


def test_main_rejects_bad_radix(capsys):
    assert main.main(["--no-db", "-r", "17", "-i", "1"]) == 2
    assert "Error 5001" in capsys.readouterr().err
