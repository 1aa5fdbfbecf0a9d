import json

from pathlib import Path

from posematch.config import PROFILES, AppConfig, load_config
from posematch.presets import list_poses


def test_missing_file_gives_defaults(tmp_path):
	cfg = load_config(tmp_path / "absent.json")
	assert cfg == AppConfig()
	assert cfg.capture.success_threshold == 80
	assert cfg.capture.hold_millis == 3000.0
	assert cfg.scoring.smoothing_alpha == 0.2
	assert cfg.template.max_edge == 640


def test_malformed_file_falls_back_to_defaults(tmp_path):
	p = tmp_path / "config.json"
	p.write_text("{not json", encoding="utf-8")
	assert load_config(p) == AppConfig()


def test_sections_are_parsed_tolerantly(tmp_path):
	p = tmp_path / "config.json"
	p.write_text(
		json.dumps(
			{
				"database": {"url": "postgresql://u@localhost/pm", "pool_min_size": "2", "pool_max_size": 1},
				"camera": {"front_index": "3", "resolutions": ["1280x720", [640, 480], "bogus"]},
				"detector": {"model_complexity": 7},
				"scoring": {"smoothing_alpha": 3.0},
			}
		),
		encoding="utf-8",
	)
	cfg = load_config(p)
	assert cfg.database.url == "postgresql://u@localhost/pm"
	assert cfg.database.pool_min_size == 2
	assert cfg.database.pool_max_size == 2
	assert cfg.camera.front_index == 3
	assert cfg.camera.resolutions == ((1280, 720), (640, 480))
	assert cfg.detector.model_complexity == 2
	assert cfg.scoring.smoothing_alpha == 0.2


def test_rear_profile_with_overrides(tmp_path):
	p = tmp_path / "config.json"
	p.write_text(
		json.dumps({"capture": {"profile": "rear", "overrides": {"success_threshold": 150, "hold_millis": 1500}}}),
		encoding="utf-8",
	)
	cap = load_config(p).capture
	assert cap.name == "rear"
	assert cap.mirror_output is False
	assert cap.default_facing == "rear"
	assert cap.expose_camera_controls is True
	assert cap.success_threshold == 100
	assert cap.hold_millis == 1500.0


def test_unknown_profile_uses_selfie(tmp_path):
	p = tmp_path / "config.json"
	p.write_text(json.dumps({"capture": {"profile": "portrait-studio"}}), encoding="utf-8")
	assert load_config(p).capture == PROFILES["selfie"]


def test_example_config_loads_and_names_every_preset_image():
	example = Path(__file__).resolve().parents[1] / "config.example.json"
	cfg = load_config(example)
	assert cfg.template.presets_dir == "static/poses"
	note = json.loads(example.read_text(encoding="utf-8"))["template"]["_presets_dir_note"]
	for pose in list_poses():
		assert pose.image_file in note
