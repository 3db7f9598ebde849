#!/usr/bin/env python3
"""
Lead Scoring Module - deterministic, explainable 0-100 lead scores.

Public API:
- LeadScoringEngine: pure scorer (score, rating, explanations)
- LeadScoringService: recalculation and lead queries inside a unit of work
- recalculate_all_tradies: scheduled sweep, one unit of work per tradie

Modules:
- sub_scores.py: the five band-score functions
- engine.py: LeadScoringEngine
- dto.py: result DTOs
- service.py: LeadScoringService orchestrator
"""

from core.lead_scoring.engine import LeadScoringEngine
from core.lead_scoring.service import LeadScoringService, recalculate_all_tradies

__all__ = ['LeadScoringEngine', 'LeadScoringService', 'recalculate_all_tradies']
