from rich.console import Console

from tempsys import console as totp_console
from tempsys.totp import BASE32_ALPHABET, current_code

RFC_SECRET_B32 = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_secret_command(capsys):
    assert totp_console.main(["secret"]) == 0
    out = capsys.readouterr().out
    secret = out.split("Secret:")[1].split()[0]
    assert len(secret) == 32
    assert set(secret) <= set(BASE32_ALPHABET)


def test_secret_command_with_account(capsys):
    assert totp_console.main(["secret", "--bytes", "10", "--account", "alice"]) == 0
    out = capsys.readouterr().out
    assert "otpauth://totp/TempSys%3Aalice?secret=" in out


def test_verify_command(capsys):
    assert totp_console.main(["verify", current_code(RFC_SECRET_B32), RFC_SECRET_B32]) == 0
    assert totp_console.main(["verify", "", RFC_SECRET_B32]) == 1
    assert totp_console.main(["verify", "123456", "!!!!"]) == 1


def test_code_table_shows_surrounding_windows():
    table = totp_console.build_code_table(RFC_SECRET_B32, now=59)
    recorder = Console(record=True, width=120)
    recorder.print(table)
    text = recorder.export_text()

    assert "755224" in text
    assert "287082" in text
    assert "359152" in text


def test_code_table_at_epoch_has_no_previous_window():
    table = totp_console.build_code_table(RFC_SECRET_B32, now=0)
    assert table.row_count == 2


def test_code_command_rejects_empty_secret(capsys):
    assert totp_console.main(["code", "!!!!"]) == 2


def test_code_command_prints_table(capsys):
    assert totp_console.main(["code", RFC_SECRET_B32]) == 0
    assert "Authenticator Codes" in capsys.readouterr().out
