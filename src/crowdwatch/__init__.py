"""
CrowdWatch - crowd-sourced disaster detection.

Social posts are classified (Bedrock LLM with keyword fallback), located
against a Malaysian gazetteer, deduplicated, aggregated into location spikes
and verified against official weather warnings.
"""

__version__ = "0.1.0"
