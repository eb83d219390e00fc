#!/usr/bin/env python3
"""
voicechange - Basic Usage Examples

Demonstrates:
1. Synthetic source/target recordings
2. Spectral linear fit and its error report
3. Conversion of a recording
4. Model save/load round-trip
5. Time-domain network fit
"""

import tempfile
from pathlib import Path

import numpy as np

from voicechange import (
    LinearFitConfig,
    NetworkFitConfig,
    RawNetworkStrategy,
    Recording,
    SpectralLinearStrategy,
    generate,
    load_model,
    save_model,
    translate,
    windowed_mse,
)


def tone(n: int, amplitude: float, sample_rate: int = 16000) -> Recording:
    t = np.arange(n) / sample_rate
    return Recording(amplitude * np.sin(2 * np.pi * 220 * t), sample_rate)


def main():
    print("=" * 70)
    print("VOICECHANGE - BASIC USAGE EXAMPLES")
    print("=" * 70)

    # 1. Recordings
    print("\n1. Creating recordings...")
    source = tone(64 * 64, 0.8)
    target = tone(64 * 64, 0.3)
    print(f"   Source: {len(source)} samples @ {source.sample_rate} Hz")

    # 2. Spectral linear fit
    print("\n2. Spectral linear fit (window 64)...")
    model, report = generate(source, target, SpectralLinearStrategy(LinearFitConfig(window_size=64)))
    print(f"   Baseline error:    {report.baseline_error:.4f}")
    print(f"   Transformed error: {report.transformed_error:.4f}")
    print(f"   Improved:          {report.improved}")

    # 3. Convert
    print("\n3. Converting source...")
    converted = translate(model, source)
    before = windowed_mse(source.samples, target.samples, 64).mean()
    after = windowed_mse(converted.samples, target.samples, 64).mean()
    print(f"   MSE vs target: {before:.5f} -> {after:.5f}")

    # 4. Persistence
    print("\n4. Save/load...")
    with tempfile.TemporaryDirectory() as td:
        path = Path(td) / "model.json"
        save_model(path, model)
        loaded = load_model(path)
        print(f"   Reloaded {loaded.kind} model, {loaded.input_size}x{loaded.input_size}")

    # 5. Network fit
    print("\n5. Network fit (window 64, small hidden layers)...")
    cfg = NetworkFitConfig(window_size=64, hidden_sizes=(32, 32), max_iterations=10, seed=0)
    net, _ = generate(source, target, RawNetworkStrategy(cfg))
    after = windowed_mse(translate(net, source).samples, target.samples, 64).mean()
    print(f"   MSE vs target: {after:.5f}")

    print("\n" + "=" * 70)
    print("Done.")


if __name__ == "__main__":
    main()
