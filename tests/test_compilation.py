"""Tests for locating source positions in compiler output."""

from __future__ import annotations

from rustmode.compilation import Location, parse_locations

RUSTC_OUTPUT = """\
error[E0308]: mismatched types
 --> src/main.rs:4:18
  |
4 |     let x: u8 = "a";
  |                 ^^^ expected `u8`, found `&str`

warning: unused variable: `y`
 --> src/lib.rs:2:9
  |
2 |     let y = 1;
  |         ^ help: if this is intentional, prefix it with an underscore: `_y`
  |
 ::: src/other.rs:10:1
"""


class TestRustc:
    def test_arrow_lines(self) -> None:
        locations = parse_locations(RUSTC_OUTPUT)
        assert locations[0] == Location("src/main.rs", 4, 18, "error", "mismatched types")
        assert locations[1] == Location("src/lib.rs", 2, 9, "warning", "unused variable: `y`")

    def test_secondary_location_is_note(self) -> None:
        locations = parse_locations(RUSTC_OUTPUT)
        assert len(locations) == 3
        assert locations[2].path == "src/other.rs"
        assert locations[2].line == 10
        assert locations[2].severity == "note"

    def test_source_lines_are_not_locations(self) -> None:
        assert parse_locations('4 |     let x: u8 = "a";\n') == []

    def test_windows_path(self) -> None:
        locations = parse_locations(r"error: oops" + "\n" + r"  --> C:\src\main.rs:3:7" + "\n")
        assert locations == [Location(r"C:\src\main.rs", 3, 7, "error", "oops")]

    def test_rustfmt_diagnostic(self) -> None:
        output = "error: expected item, found `let`\n --> main.rs:1:1\n"
        locations = parse_locations(output)
        assert locations == [Location("main.rs", 1, 1, "error", "expected item, found `let`")]


class TestPanics:
    def test_old_panic_format(self) -> None:
        output = "thread 'main' panicked at 'boom', src/main.rs:7:5\n"
        assert parse_locations(output) == [Location("src/main.rs", 7, 5, "error", "boom")]

    def test_old_panic_without_column(self) -> None:
        output = "thread 'worker' panicked at 'index out of bounds', src/lib.rs:12\n"
        assert parse_locations(output) == [Location("src/lib.rs", 12, None, "error", "index out of bounds")]

    def test_new_panic_format(self) -> None:
        output = "thread 'main' panicked at src/main.rs:9:5:\nexplicit panic\nnote: run with `RUST_BACKTRACE=1`\n"
        assert parse_locations(output) == [Location("src/main.rs", 9, 5, "error", "explicit panic")]

    def test_mixed_output_in_order(self) -> None:
        output = RUSTC_OUTPUT + "thread 'main' panicked at 'boom', src/main.rs:7:5\n"
        paths = [loc.path for loc in parse_locations(output)]
        assert paths == ["src/main.rs", "src/lib.rs", "src/other.rs", "src/main.rs"]
