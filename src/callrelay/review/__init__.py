"""Human-in-the-loop review of extracted action items.

Submodules:
    state: Per-item state machine.
    models: Persisted review records and action outcomes.
    rendering: Pure Slack Block Kit rendering of a review.
    coordinator: Review lifecycle across stateless request handlers.
"""
