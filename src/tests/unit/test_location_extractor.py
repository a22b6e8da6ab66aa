"""
Unit Tests for Location Extractor

Tests gazetteer matching, alias canonicalisation, coordinate resolution and
location precedence.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.core.location_extractor import LocationExtractor


class TestLocationExtractor:

    def setup_method(self):
        self.extractor = LocationExtractor()

    def test_extract_city(self):
        place = self.extractor.extract("Banjir teruk di Shah Alam")
        assert place["location"] == "shah alam"
        assert place["region"] == "selangor"

    def test_extract_alias_is_canonicalised(self):
        place = self.extractor.extract("Flooding in PJ right now")
        assert place["location"] == "petaling jaya"
        assert place["matched_term"] == "pj"

    def test_klang_valley_towns_share_selangor(self):
        places = [self.extractor.extract(t) for t in ("Banjir di Shah Alam", "Flood in Klang", "Puchong jalan ditutup")]
        assert {p["region"] for p in places} == {"selangor"}

    def test_longest_term_wins(self):
        place = self.extractor.extract("Bangsar South roads underwater")
        assert place["location"] == "bangsar south"

    def test_city_beats_state_when_longer(self):
        place = self.extractor.extract("Flash flood in Kuantan, Pahang")
        assert place["location"] == "kuantan"
        assert place["region"] == "pahang"

    def test_no_substring_false_positive(self):
        """'kl' inside 'weekly' is not Kuala Lumpur."""
        assert self.extractor.extract("Weekly weather update") is None

    def test_extract_all_regions(self):
        places = self.extractor.extract_all("Flood warning for Kelantan and Terengganu")
        assert [p["region"] for p in places] == ["kelantan", "terengganu"]

    def test_resolve_name_known(self):
        place = self.extractor.resolve_name("KL")
        assert place["location"] == "kuala lumpur"
        assert place["region"] == "kuala lumpur"

    def test_resolve_name_unknown(self):
        place = self.extractor.resolve_name("Taman Melawati")
        assert place["location"] == "taman melawati"
        assert place["region"] is None

    def test_resolve_name_placeholder(self):
        assert self.extractor.resolve_name("unknown") is None
        assert self.extractor.resolve_name("") is None

    def test_nearest_place(self):
        place = self.extractor.nearest_place(3.14, 101.69)
        assert place["location"] == "kuala lumpur"
        assert place["distance_km"] < 5

    def test_nearest_place_out_of_range(self):
        """Middle of the South China Sea is nowhere near a known city."""
        assert self.extractor.nearest_place(4.0, 109.0) is None

    def test_resolve_prefers_declared_location(self):
        post = {"text": "Flood near KLCC", "location": "Ipoh"}
        place = self.extractor.resolve(post)
        assert place["region"] == "perak"
        assert place["resolved_by"] == "post"

    def test_resolve_uses_llm_location_before_text(self):
        post = {"text": "Flood near KLCC"}
        place = self.extractor.resolve(post, llm_location="Penang")
        assert place["region"] == "penang"
        assert place["resolved_by"] == "llm"

    def test_resolve_from_text(self):
        place = self.extractor.resolve({"text": "Tanah runtuh di Cameron Highlands"})
        assert place["region"] == "perak"
        assert place["resolved_by"] == "text"

    def test_resolve_from_coordinates(self):
        post = {"text": "Water everywhere", "coordinates": {"lat": 5.98, "lng": 116.07}}
        place = self.extractor.resolve(post)
        assert place["location"] == "kota kinabalu"
        assert place["region"] == "sabah"
        assert place["resolved_by"] == "coordinates"

    def test_resolve_unknown(self):
        place = self.extractor.resolve({"text": "Water everywhere"})
        assert place["region"] == "unknown"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
