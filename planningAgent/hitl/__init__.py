"""Human-in-the-loop: suspension gateway and sensitive-action review."""

from .gateway import HumanInterruptGateway, WaitingResult, build_interrupt, coerce_external_input

__all__ = ["HumanInterruptGateway", "WaitingResult", "build_interrupt", "coerce_external_input"]
