"""Sample workflows built on the execution context."""

from .onboarding import OnboardingResult, run_onboarding

__all__ = ["OnboardingResult", "run_onboarding"]
