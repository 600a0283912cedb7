from .extract import scan_excitations, scan_optimization
