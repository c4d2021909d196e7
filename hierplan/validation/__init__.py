from .independent_checks import verify_flight_outputs, write_check_report

__all__ = ["verify_flight_outputs", "write_check_report"]
