def test_import_alerts_package():
    import importlib
    mod = importlib.import_module("migrate_alerts.alerts")
    for name in ("DetectionPipeline", "AlertLedger", "DiscordNotifier", "MigrationAlertOrchestrator"):
        assert hasattr(mod, name), f"migrate_alerts.alerts missing {name}"


def test_import_runner_entry_point():
    import importlib
    mod = importlib.import_module("migrate_alerts.alerts.runner")
    assert hasattr(mod, "main") and callable(getattr(mod, "main"))


def test_import_scraper():
    from migrate_alerts.sources.migrate_fun import MigrateFunFetcher, extract_observations
    assert callable(extract_observations)
    assert callable(getattr(MigrateFunFetcher, "fetch"))
