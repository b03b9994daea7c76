"""Vision package: preprocessing, classifier interface and fingerprints."""
