import pytest

from engine import MemoryConfig
from virtmem import ArgumentError, main, parse_args


@pytest.fixture
def backing_file(tmp_path, page_image):
    path = tmp_path / "BACKING_STORE.bin"
    path.write_bytes(page_image(MemoryConfig()))
    return str(path)


@pytest.fixture
def input_file(tmp_path):
    path = tmp_path / "addresses.txt"
    path.write_text("16916\n62493\n16916\n")
    return str(path)


def test_parse_args():
    assert parse_args(["virtmem", "b.bin", "in.txt", "-p", "1"]) == ("b.bin", "in.txt", 1)


@pytest.mark.parametrize("argv", [
    ["virtmem"],
    ["virtmem", "b.bin", "in.txt", "-p"],
    ["virtmem", "b.bin", "in.txt", "-x", "0"],
    ["virtmem", "b.bin", "in.txt", "-p", "lru"],
    ["virtmem", "b.bin", "in.txt", "-p", "2"],
])
def test_bad_arguments(argv):
    with pytest.raises(ArgumentError):
        parse_args(argv)


def test_usage_exit_code(capsys):
    assert main(["virtmem", "only-one"]) == 1
    assert "Usage" in capsys.readouterr().err


def test_missing_backing_store(tmp_path, input_file, capsys):
    assert main(["virtmem", str(tmp_path / "missing.bin"), input_file, "-p", "0"]) == 1
    assert "backing store" in capsys.readouterr().err


def test_missing_input(tmp_path, backing_file, capsys):
    assert main(["virtmem", backing_file, str(tmp_path / "missing.txt"), "-p", "0"]) == 1
    assert "address file" in capsys.readouterr().err


@pytest.mark.parametrize("policy", ["0", "1"])
def test_run(backing_file, input_file, capsys, policy):
    assert main(["virtmem", backing_file, input_file, "-p", policy]) == 0
    assert capsys.readouterr().out.splitlines() == [
        "Virtual address: 16916 Physical address: 20 Value: 86",
        "Virtual address: 62493 Physical address: 285 Value: 17",
        "Virtual address: 16916 Physical address: 20 Value: 86",
        "Number of Translated Addresses = 3",
        "Page Faults = 2",
        "Page Fault Rate = 0.667",
        "TLB Hits = 1",
        "TLB Hit Rate = 0.333",
    ]


def test_run_with_replacement(backing_file, tmp_path, capsys):
    path = tmp_path / "addresses.txt"
    path.write_text("0\n256\n0\n512\n")
    config = MemoryConfig(frames=2)

    assert main(["virtmem", backing_file, str(path), "-p", "1"], config=config) == 0
    lines = capsys.readouterr().out.splitlines()
    # page 2 takes frame 1 from the least recently used page 1
    assert lines[3] == "Virtual address: 512 Physical address: 256 Value: 2"
    assert lines[5] == "Page Faults = 3"


def test_run_with_binary_garbage_line(backing_file, tmp_path, capsys):
    path = tmp_path / "addresses.txt"
    path.write_bytes(b"16916\n\xff\xfe\n256\n")
    assert main(["virtmem", backing_file, str(path), "-p", "0"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[1] == "Virtual address: 0 Physical address: 256 Value: 0"
    assert lines[3] == "Number of Translated Addresses = 3"


def test_empty_input(backing_file, tmp_path, capsys):
    path = tmp_path / "empty.txt"
    path.write_text("")
    assert main(["virtmem", backing_file, str(path), "-p", "0"]) == 0
    assert capsys.readouterr().out.splitlines() == [
        "Number of Translated Addresses = 0",
        "Page Faults = 0",
        "Page Fault Rate = 0.000",
        "TLB Hits = 0",
        "TLB Hit Rate = 0.000",
    ]
