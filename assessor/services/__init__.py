from assessor.services.scoring import compute_level, get_focus_domains, next_level

__all__ = ["compute_level", "get_focus_domains", "next_level"]
