from .fake_broker import CannedResponse, FakeBroker, RecordedRequest

__all__ = ["CannedResponse", "FakeBroker", "RecordedRequest"]
