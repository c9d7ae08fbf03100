"""Shared test fixtures for the procwatch test suite.

Available Fixtures
==================

HTTP Mocks (from tests/fixtures/http.py)
----------------------------------------
- mock_response: Mock aiohttp response (status 200, empty JSON object)
- mock_session: MockClientSession returning ``mock_response`` for every call

Monitor Fakes (from tests/fixtures/monitor.py)
----------------------------------------------
- snapshot_source: FakeSnapshotSource with scriptable, gateable responses
- stream_factory: FakeStreamFactory recording every FakeStream it builds
- controller: ReconciliationController wired to both fakes (not started)
"""
