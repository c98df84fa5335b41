from tradequote.fees.model import FeeModel, FeeResult, calculate_fees, to_bps_string

__all__ = ["FeeModel", "FeeResult", "calculate_fees", "to_bps_string"]
