"""
============================================================================
Project Exposure Desk v1.0.0
Logic Layer - Formulas, Exposure, Pricing and MTM
============================================================================

Reliability Level: L5 Core
Assurance: Pure calculations over immutable leg snapshots

This package contains the calculation core:
- Formula token model and parser
- Exposure calculator (physical / pricing per formula)
- Price evaluator (left to right, no precedence)
- MTM valuator (physical and paper)
- Exposure aggregator (month x product table)
- EFP and working-day distribution helpers
- Coordination objects: deletion state machine, event-window circuit
  breaker, bulk operation coordinator

============================================================================
"""

# Import submodules directly: market_prices imports app.logic.month_codes.
