def test_defaults(isolated_settings):
    svc = isolated_settings
    assert svc.zoom_factor() == 1.1
    assert svc.zoom_out_floor() == 0.2
    assert svc.scale_step() == 0.25
    assert svc.scale_bounds() == (0.5, 3.0)
    assert svc.small_screen_max_width() == 600
    assert svc.default_download_filename() == "download.pdf"
    assert svc.signature_api_prefix() == "/flowbee/api"


def test_zoom_floor_roundtrip(tmp_path, monkeypatch):
    """Saved settings survive re-initialisation of the singleton."""
    from docview_project.src.services.settings_service import SettingsService

    settings_file = tmp_path / "roundtrip.json"
    monkeypatch.setattr(SettingsService, "_path", settings_file)
    SettingsService.reset_instance()

    svc = SettingsService()
    svc.set_zoom_out_floor(0.1)
    assert settings_file.exists()

    SettingsService.reset_instance()
    svc_new = SettingsService()
    assert svc_new.zoom_out_floor() == 0.1


def test_unknown_keys_ignored(tmp_path, monkeypatch):
    from docview_project.src.services.settings_service import SettingsService

    settings_file = tmp_path / "extra.json"
    settings_file.write_text('{"zoom_factor": 1.5, "bogus": 1}', encoding="utf-8")
    monkeypatch.setattr(SettingsService, "_path", settings_file)
    SettingsService.reset_instance()

    svc = SettingsService()
    assert svc.zoom_factor() == 1.5
    assert svc.get("bogus") is None


def test_corrupt_file_falls_back_to_defaults(tmp_path, monkeypatch):
    from docview_project.src.services.settings_service import SettingsService

    settings_file = tmp_path / "corrupt.json"
    settings_file.write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(SettingsService, "_path", settings_file)
    SettingsService.reset_instance()

    assert SettingsService().zoom_factor() == 1.1


def test_singleton(isolated_settings):
    from docview_project.src.services.settings_service import SettingsService

    assert SettingsService() is isolated_settings
