import pytest

from nestools.images import ToolError
from nestools.interleave import BLOCK_SIZE, interleave, main, read_block


def test_read_block_pads(tmp_path):
    path = tmp_path / "map.bin"
    path.write_bytes(b"abc")
    block = read_block(path)
    assert len(block) == BLOCK_SIZE
    assert block[:3] == b"abc"
    assert block[3:] == bytes(BLOCK_SIZE - 3)


def test_read_block_too_large(tmp_path):
    path = tmp_path / "big.bin"
    path.write_bytes(bytes(BLOCK_SIZE + 1))
    with pytest.raises(ToolError, match="too large"):
        read_block(path)


def test_read_block_empty(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    with pytest.raises(ToolError, match="Read error"):
        read_block(path)


def test_read_block_missing(tmp_path):
    with pytest.raises(ToolError, match="Can't open"):
        read_block(tmp_path / "missing.bin")


def test_interleave_alternates():
    map_data = bytes(i % 256 for i in range(BLOCK_SIZE))
    chr_data = bytes((i * 7) % 256 for i in range(BLOCK_SIZE))
    out = interleave(map_data, chr_data)
    assert len(out) == 2 * BLOCK_SIZE
    assert out[0::2] == map_data
    assert out[1::2] == chr_data


def test_interleave_pads_short_input():
    out = interleave(b"\x01", b"\x02")
    assert out[:2] == b"\x01\x02"
    assert out[2:] == bytes(2 * BLOCK_SIZE - 2)


def test_interleave_too_large():
    with pytest.raises(ToolError):
        interleave(bytes(BLOCK_SIZE + 1), b"")


def test_main(tmp_path):
    (tmp_path / "m").write_bytes(b"MM")
    (tmp_path / "c").write_bytes(b"CC")
    out = tmp_path / "o"
    assert main([str(tmp_path / "m"), str(tmp_path / "c"), str(out)]) == 0
    data = out.read_bytes()
    assert data == interleave(b"MM", b"CC")


def test_main_usage():
    assert main(["only", "two"]) == 1