import importlib


def test_import_package():
    pkg = importlib.import_module("RVNmetfillPy")
    assert hasattr(pkg, "__version__")


def test_public_entry_points():
    pkg = importlib.import_module("RVNmetfillPy")
    for name in (
        "met_spatial_interpolation",
        "infill_projected",
        "reproject_stations",
        "evaluate_all_stations",
        "MissingDataWarning",
        "InvalidProjectionError",
    ):
        assert hasattr(pkg, name)
    assert pkg.DEFAULT_PROJ_ID == 26917
    assert tuple(pkg.DEFAULT_VARIABLES) == ("max_temp", "min_temp", "total_precip")
