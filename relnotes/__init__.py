"""relnotes — insert release notes into changelogs and open docs PRs."""

__version__ = "0.1.0"
