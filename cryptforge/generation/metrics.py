from typing import Dict


def init_metrics() -> Dict[str, int | float | bool]:
    return {
        'rooms_selected': 0,
        'rooms_placed': 0,
        'rooms_dropped': 0,
        'corridors_routed': 0,
        'corridors_fallback': 0,
        'doors_created': 0,
        'bridges': 0,
        'prefab_rooms': 0,
        'locks_placed': 0,
        'locks_abandoned': 0,
        'secret_doors': 0,
        'tiles_painted': 0,
        'runtime_ms': 0.0,
    }
