"""RecapSensei: episode recaps and shareable blurbs from screenshots and subtitles."""

__version__ = "0.1.0"
