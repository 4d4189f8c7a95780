import pytest

from nestools.nesasm import Dialect, convert, main, output_name


@pytest.mark.parametrize(
    "dialect, low, high",
    [(Dialect.CA65, b".lobyte", b".hibyte"), (Dialect.ASM6, b"<", b">")],
)
def test_low_and_high(dialect, low, high):
    assert convert(b" lda LOW x", dialect) == b" lda " + low + b" x"
    assert convert(b" lda HIGH x", dialect) == b" lda " + high + b" x"


@pytest.mark.parametrize("dialect", list(Dialect))
def test_brackets_become_parentheses(dialect):
    assert convert(b" lda [ptr],y", dialect) == b" lda (ptr),y"


def test_ca65_define():
    result = convert(b"x\nFT_THREAD\n", Dialect.CA65)
    assert result == b"x\n.define FT_THREAD       1\n"


def test_asm6_keeps_define_label():
    assert convert(b"x\nFT_THREAD\n", Dialect.ASM6) == b"x\nFT_THREAD\n"


def test_ca65_label_gets_colon():
    assert convert(b"\nloop lda", Dialect.CA65) == b"\nloop: lda"
    assert convert(b"\nloop: lda", Dialect.CA65) == b"\nloop: lda"
    assert convert(b"\nloop lda", Dialect.ASM6) == b"\nloop lda"


def test_equ_line_has_no_colon():
    text = b"\nCONST equ 5"
    assert convert(text, Dialect.CA65) == text


def test_local_label():
    assert convert(b"\n.skip", Dialect.ASM6) == b"\n@skip"
    assert convert(b"\n.skip", Dialect.CA65) == b"\n@skip:"


@pytest.mark.parametrize("dialect", list(Dialect))
def test_local_reference(dialect):
    assert convert(b" bne .skip", dialect) == b" bne @skip"


def test_ifdef_and_ifndef():
    assert (
        convert(b"\n\t.ifdef FT_PAL_SUPPORT\n", Dialect.CA65)
        == b"\n\t.if(FT_PAL_SUPPORT)\n"
    )
    assert (
        convert(b"\n\t.ifndef FT_PAL_SUPPORT\n", Dialect.CA65)
        == b"\n\t.if(!FT_PAL_SUPPORT)\n"
    )


def test_data_directives():
    assert convert(b"\t.db 1", Dialect.CA65) == b"\t.byte 1"
    assert convert(b"\t.dw 1", Dialect.CA65) == b"\t.word 1"
    assert convert(b"\t.db 1", Dialect.ASM6) == b"\tdb 1"
    assert convert(b"\t.word 1", Dialect.ASM6) == b"\tword 1"


@pytest.mark.parametrize("dialect", list(Dialect))
def test_comment_is_copied(dialect):
    text = b"; LOW [x]\n"
    assert convert(text, dialect) == text


def test_str_input_gives_str():
    assert convert(" lda [ptr]", Dialect.ASM6) == " lda (ptr)"


def test_output_names():
    assert output_name("song.asm", Dialect.CA65) == "song.s"
    assert output_name("song.asm", Dialect.ASM6) == "song_asm6.asm"


def test_main_writes_both_files(tmp_path):
    source = tmp_path / "driver.asm"
    text = b"\nloop lda [ptr],y\n\t.db LOW x\n"
    source.write_bytes(text)
    assert main([str(source)]) == 0
    assert (tmp_path / "driver.s").read_bytes() == convert(text, Dialect.CA65)
    assert (tmp_path / "driver_asm6.asm").read_bytes() == convert(text, Dialect.ASM6)


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.asm")]) == 1
    assert "Can't open file" in capsys.readouterr().out


def test_main_without_arguments(capsys):
    assert main([]) == 0
    assert "Usage" in capsys.readouterr().out