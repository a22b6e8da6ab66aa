"""
Location Extraction

Resolves where a post is talking about:
- Gazetteer match over the post text (longest term wins)
- Normalisation of free-text names (post metadata, LLM output)
- Reverse resolution of coordinates to the nearest known city

Every resolved place carries a `region` (state-level grouping key) that the
spike detector aggregates on, so "PJ", "Petaling Jaya" and "Shah Alam" posts
all count towards the same Kuala Lumpur/Klang Valley spike.
"""

import math
from typing import Dict, List, Optional, Tuple

from aws_lambda_powertools import Logger

from crowdwatch.core import lexicon
from crowdwatch.utils.text_match import compile_terms, normalise_text

logger = Logger(child=True)


class LocationExtractor:
    """
    Static gazetteer lookup for Malaysian place names.
    """

    EARTH_RADIUS_M = 6371000
    DEFAULT_MAX_DISTANCE_KM = 50.0

    # Tie-break when two terms of equal length match
    KIND_PRIORITY = {"state": 3, "city": 2, "area": 1}

    def __init__(self):
        # term -> (region, kind)
        self._terms: Dict[str, Tuple[str, str]] = {}
        for region, groups in lexicon.REGIONS.items():
            for term in groups.get("areas", []):
                self._terms[term] = (region, "area")
            for term in groups.get("cities", []):
                self._terms[term] = (region, "city")
            self._terms[region] = (region, "state")

        self._pattern = compile_terms(list(self._terms), inflect=False)

    def extract(self, text: str) -> Optional[Dict]:
        """
        Find the most specific gazetteer place mentioned in text.

        Returns:
            {"location": canonical name, "region": state key, "matched_term": term}
            or None when no place is mentioned
        """
        if not text:
            return None

        candidates: List[str] = [m.group(1).lower() for m in self._pattern.finditer(text)]
        if not candidates:
            return None

        best = max(
            candidates,
            key=lambda t: (len(t), self.KIND_PRIORITY[self._terms[t][1]]),
        )
        region, _ = self._terms[best]
        return {
            "location": self.canonical(best),
            "region": region,
            "matched_term": best,
        }

    def extract_all(self, text: str) -> List[Dict]:
        """
        Every region mentioned in text, one entry per region, in order of
        first mention.
        """
        if not text:
            return []

        by_region: Dict[str, Dict] = {}
        for m in self._pattern.finditer(text):
            term = m.group(1).lower()
            region, kind = self._terms[term]
            current = by_region.get(region)
            if current is None or (len(term), self.KIND_PRIORITY[kind]) > (
                len(current["matched_term"]),
                self.KIND_PRIORITY[self._terms[current["matched_term"]][1]],
            ):
                by_region[region] = {
                    "location": self.canonical(term),
                    "region": region,
                    "matched_term": term,
                }
        return list(by_region.values())

    def resolve_name(self, name: Optional[str]) -> Optional[Dict]:
        """
        Normalise a free-text place name through the gazetteer.

        Unknown names are kept (lower-cased) with region None.
        """
        cleaned = normalise_text(name or "")
        if not cleaned or cleaned in ("unknown", "none", "n/a", "null"):
            return None

        if cleaned in self._terms:
            return {
                "location": self.canonical(cleaned),
                "region": self._terms[cleaned][0],
                "matched_term": cleaned,
            }

        # "Flooding near Jalan Klang Lama, KL" style names
        found = self.extract(cleaned)
        if found:
            return found

        return {"location": cleaned, "region": None, "matched_term": None}

    def nearest_place(
        self, lat: float, lon: float, max_distance_km: float = DEFAULT_MAX_DISTANCE_KM
    ) -> Optional[Dict]:
        """
        Reverse-resolve coordinates to the closest city centroid.
        """
        best_name = None
        best_distance = None
        for name, (c_lat, c_lon) in lexicon.PLACE_CENTROIDS.items():
            distance = self._haversine_distance(lat, lon, c_lat, c_lon)
            if best_distance is None or distance < best_distance:
                best_name, best_distance = name, distance

        if best_name is None or best_distance > max_distance_km * 1000:
            return None

        return {
            "location": best_name,
            "region": self._terms[best_name][0],
            "matched_term": None,
            "distance_km": round(best_distance / 1000, 2),
        }

    def resolve(self, post: Dict, llm_location: Optional[str] = None) -> Dict:
        """
        Resolve an event location.

        Order: post-declared location -> LLM location -> text gazetteer
        -> coordinates. Unresolved posts land in region "unknown".
        """
        declared = self.resolve_name(post.get("location"))
        if declared and declared.get("region"):
            return {**declared, "resolved_by": "post"}

        from_llm = self.resolve_name(llm_location)
        if from_llm and from_llm.get("region"):
            return {**from_llm, "resolved_by": "llm"}

        from_text = self.extract(post.get("text", ""))
        if from_text:
            return {**from_text, "resolved_by": "text"}

        coords = post.get("coordinates") or {}
        lat, lng = coords.get("lat"), coords.get("lng")
        if lat is not None and lng is not None:
            nearest = self.nearest_place(float(lat), float(lng))
            if nearest:
                return {**nearest, "resolved_by": "coordinates"}

        # Keep whatever free text we were given, but never group on it
        fallback = declared or from_llm
        if fallback:
            return {**fallback, "region": "unknown", "resolved_by": "unmatched"}

        return {"location": "unknown", "region": "unknown", "matched_term": None, "resolved_by": "none"}

    @staticmethod
    def canonical(term: str) -> str:
        term = term.lower()
        return lexicon.PLACE_ALIASES.get(term, term)

    def _haversine_distance(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """
        Calculate distance between two points in meters.
        """
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        delta_phi = math.radians(lat2 - lat1)
        delta_lambda = math.radians(lon2 - lon1)

        a = (
            math.sin(delta_phi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return self.EARTH_RADIUS_M * c
