from pathlib import Path
from core.config import AppConfig

def test_config_defaults(tmp_path):
    cfg = AppConfig(path=tmp_path / "config.json")
    assert cfg.dump_length == 1700
    assert cfg.marker_byte == 0x4D
    assert cfg.marker_group_size == 2
    assert cfg.discoveries_path is None

def test_config_save_and_load(tmp_path):
    path = tmp_path / "config.json"
    cfg = AppConfig(path=path)
    cfg.dump_length = 1800
    cfg.discoveries_path = str(tmp_path / "found.json")
    cfg.save()
    cfg2 = AppConfig(path=path)
    assert cfg2.dump_length == 1800
    assert cfg2.resolved_discoveries_path() == tmp_path / "found.json"

def test_config_does_not_crash_on_missing_file(tmp_path):
    cfg = AppConfig(path=tmp_path / "nonexistent" / "config.json")
    assert cfg.dump_length == 1700

def test_config_ignores_corrupt_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert AppConfig(path=path).marker_byte == 0x4D

def test_default_discoveries_next_to_config(tmp_path):
    cfg = AppConfig(path=tmp_path / "config.json")
    assert cfg.resolved_discoveries_path() == tmp_path / "discoveries.json"

def test_captures_dir_override(tmp_path):
    cfg = AppConfig(path=tmp_path / "config.json")
    cfg.captures_dir = str(tmp_path)
    assert cfg.resolved_captures_dir() == Path(tmp_path)
