import unittest
from unittest.mock import MagicMock

import requests

from config import Configuration
from errors import ProviderUnavailable
from models import CommercialRecord, OSMRecord
from services.bbox_builder import ProviderRequest
from services.fetcher import (
    MultiEndpointFetcher,
    SoftFailure,
    nominatim_results,
    overpass_elements,
    place_details_result,
    places_results,
)

ENDPOINTS = ["https://a.example/api", "https://b.example/api", "https://c.example/api"]


def _response(payload=None, status=200, text="", bad_json=False):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = text
    if bad_json:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


def _element(name="麵店"):
    return {"type": "node", "id": 1, "lat": 25.0, "lon": 121.5, "tags": {"name": name}}


class TestMultiEndpointFetcher(unittest.TestCase):
    def setUp(self):
        self.cfg = Configuration(endpoint_delay=0.5)
        self.session = MagicMock()
        self.sleeps = []
        self.fetcher = MultiEndpointFetcher(self.cfg, session=self.session, sleep=self.sleeps.append)
        self.request = ProviderRequest(method="POST", data={"data": "[out:json];"})

    def test_first_success_wins(self):
        self.session.request.return_value = _response({"elements": [_element()]})
        result = self.fetcher.fetch(ENDPOINTS, self.request, overpass_elements)

        self.assertEqual(result.endpoint, ENDPOINTS[0])
        self.assertEqual(len(result.records), 1)
        self.assertIsInstance(result.records[0], OSMRecord)
        self.assertEqual(self.session.request.call_count, 1)
        self.assertEqual(self.sleeps, [])

    def test_falls_back_in_order(self):
        self.session.request.side_effect = [
            requests.ConnectionError("refused"),
            _response({"elements": [_element()]}),
        ]
        result = self.fetcher.fetch(ENDPOINTS, self.request, overpass_elements)

        self.assertEqual(result.endpoint, ENDPOINTS[1])
        called = [c.args[1] for c in self.session.request.call_args_list]
        self.assertEqual(called, ENDPOINTS[:2])
        self.assertEqual(len(result.failures), 1)
        self.assertEqual(self.sleeps, [0.5])

    def test_all_failures_are_aggregated(self):
        self.session.request.side_effect = [
            requests.Timeout("slow"),
            _response(status=504, text="Gateway Timeout"),
            _response(bad_json=True),
        ]
        with self.assertRaises(ProviderUnavailable) as ctx:
            self.fetcher.fetch(ENDPOINTS, self.request, overpass_elements)

        err = ctx.exception
        self.assertEqual([f.endpoint for f in err.failures], ENDPOINTS)
        self.assertEqual(len(err.reasons), 3)
        self.assertEqual(err.reasons[0], "timeout")
        self.assertTrue(err.reasons[1].startswith("upstream 504"))
        self.assertEqual(err.reasons[2], "invalid json response")
        self.assertEqual(self.sleeps, [0.5, 0.5])

    def test_empty_result_counts_as_failure(self):
        self.session.request.side_effect = [
            _response({"elements": []}),
            _response({"elements": [_element("咖啡")]}),
        ]
        result = self.fetcher.fetch(ENDPOINTS, self.request, overpass_elements)

        self.assertEqual(result.endpoint, ENDPOINTS[1])
        self.assertEqual(result.failures[0].reason, "empty result")

    def test_request_forwards_method_and_timeout(self):
        self.session.request.return_value = _response({"elements": [_element()]})
        self.fetcher.fetch(ENDPOINTS, self.request, overpass_elements, timeout=3.0)

        args, kwargs = self.session.request.call_args
        self.assertEqual(args[0], "POST")
        self.assertEqual(kwargs["data"], {"data": "[out:json];"})
        self.assertEqual(kwargs["timeout"], 3.0)


class TestExtractors(unittest.TestCase):
    def test_overpass_remark_without_elements_is_soft_failure(self):
        with self.assertRaises(SoftFailure):
            overpass_elements({"remark": "runtime error: Query timed out", "elements": []})

    def test_places_status_checked(self):
        records = places_results({"status": "OK", "results": [{"place_id": "x", "name": "A"}]})
        self.assertIsInstance(records[0], CommercialRecord)
        self.assertEqual(places_results({"status": "ZERO_RESULTS", "results": []}), [])
        with self.assertRaises(SoftFailure):
            places_results({"status": "REQUEST_DENIED", "error_message": "bad key"})

    def test_place_details_requires_ok_result(self):
        result = {"opening_hours": {"periods": []}}
        self.assertEqual(place_details_result({"status": "OK", "result": result}), [result])
        self.assertEqual(place_details_result({"status": "OK"}), [])
        with self.assertRaises(SoftFailure):
            place_details_result({"status": "NOT_FOUND"})

    def test_nominatim_requires_list(self):
        self.assertEqual(nominatim_results([{"lat": "1", "lon": "2"}, "junk"]), [{"lat": "1", "lon": "2"}])
        with self.assertRaises(SoftFailure):
            nominatim_results({"error": "nope"})


if __name__ == "__main__":
    unittest.main()
