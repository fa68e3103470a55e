import json
import pathlib

import pytest

import pin_sheet_maker.cli
import pin_sheet_maker.config


TextLine = pin_sheet_maker.config.TextLine
ConfigurationError = pin_sheet_maker.config.ConfigurationError


#============================================
@pytest.mark.parametrize(
	"argv,expected",
	[
		(["--text", "Hello", "World"], [[TextLine("Hello"), TextLine("World")]]),
		(
			["--text", "Hello", "24", "World", "12"],
			[[TextLine("Hello", 24.0), TextLine("World", 12.0)]],
		),
		(["--text", "A", "--text", "B", "C"], [[TextLine("A")], [TextLine("B"), TextLine("C")]]),
		(["--text", "Hi", "12", "13"], [[TextLine("Hi", 12.0), TextLine("13")]]),
		(["--text", "42"], [[TextLine("42")]]),
		(["--text", "Big", "18.5"], [[TextLine("Big", 18.5)]]),
		(["--text"], []),
		(["image.png"], []),
	],
)
def test_parse_text_arguments(argv: list[str], expected: list[list[TextLine]]) -> None:
	"""
	Text blocks, lines and optional sizes are pulled from the argument list.
	"""
	text_pins, _consumed = pin_sheet_maker.cli.parse_text_arguments(argv)
	assert text_pins == expected


#============================================
def test_text_arguments_stop_at_next_flag() -> None:
	"""
	Other flags and their values are left for argparse.
	"""
	argv = ["image.png", "--text", "Hi", "-o", "out.pdf"]
	text_pins, consumed = pin_sheet_maker.cli.parse_text_arguments(argv)
	assert text_pins == [[TextLine("Hi")]]
	assert consumed == {1, 2}


#============================================
def test_parse_args_defaults() -> None:
	"""
	No arguments give a blank 32 mm template.
	"""
	args, text_pins = pin_sheet_maker.cli.parse_args([])
	assert text_pins == []
	assert args.inputs == []
	assert args.output_path == "pins.pdf"
	assert args.pin_size == "32mm"
	assert args.duplicate is False
	assert args.fill is False
	assert args.calibration is False
	assert args.text_position == "bottom"
	assert args.zoom_levels is None


#============================================
def test_parse_args_builds_config() -> None:
	"""
	Flags map onto the sheet configuration.
	"""
	args, text_pins = pin_sheet_maker.cli.parse_args(
		[
			"a.png",
			"-s", "58mm",
			"-d",
			"-f",
			"--border-color", "#112233",
			"--border-width", "2.5",
			"--zoom", "1.2",
			"--zoom", "0.9",
			"--offset-x", "4",
			"--text", "Vote", "20",
			"--text-position", "top",
		]
	)
	config = pin_sheet_maker.cli.build_config(args, text_pins)
	assert args.inputs == ["a.png"]
	assert config.pin_size == "58mm"
	assert config.duplicate is True
	assert config.fill is True
	assert config.border_color == "#112233"
	assert config.border_width_mm == 2.5
	assert config.zoom_levels == [1.2, 0.9]
	assert config.offset_x_values == [4.0]
	assert config.offset_y_values == []
	assert config.text_position == "top"
	assert config.text_pins == [[TextLine("Vote", 20.0)]]


#============================================
def test_negative_border_width_exits() -> None:
	"""
	Negative sizes are rejected by the parser.
	"""
	with pytest.raises(SystemExit):
		pin_sheet_maker.cli.parse_args(["--border-width", "-1"])


#============================================
def test_gather_image_paths(tmp_path: pathlib.Path, red_png: bytes) -> None:
	"""
	Directories expand to their image files in name order.
	"""
	folder = tmp_path / "art"
	folder.mkdir()
	(folder / "b.png").write_bytes(red_png)
	(folder / "a.PNG").write_bytes(red_png)
	(folder / "notes.txt").write_text("skip me", encoding="utf-8")
	single = tmp_path / "single.png"
	single.write_bytes(red_png)

	paths = pin_sheet_maker.cli.gather_image_paths([str(single), str(folder)])
	assert [path.name for path in paths] == ["single.png", "a.PNG", "b.png"]

	with pytest.raises(ConfigurationError):
		pin_sheet_maker.cli.gather_image_paths([str(tmp_path / "missing.png")])


#============================================
def test_main_writes_pdf_and_manifest(tmp_path: pathlib.Path, red_png: bytes) -> None:
	"""
	The command line writes the PDF and manifest.
	"""
	image_path = tmp_path / "red.png"
	image_path.write_bytes(red_png)
	output_path = tmp_path / "out.pdf"
	manifest_path = tmp_path / "out.json"
	status = pin_sheet_maker.cli.main(
		[
			str(image_path),
			"-o", str(output_path),
			"-m", str(manifest_path),
			"-d",
			"-c",
			"--text", "Hi",
		]
	)
	assert status == 0
	assert output_path.read_bytes().startswith(b"%PDF")
	data = json.loads(manifest_path.read_text(encoding="utf-8"))
	assert data["total_circles"] == 20
	assert data["pages"] == 2
	assert data["calibration"] is True


#============================================
def test_main_reports_missing_input(tmp_path: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
	"""
	Missing inputs print an error and return a failure status.
	"""
	output_path = tmp_path / "out.pdf"
	status = pin_sheet_maker.cli.main([str(tmp_path / "nope.png"), "-o", str(output_path)])
	assert status == 1
	assert "nope.png" in capsys.readouterr().err
	assert not output_path.exists()
