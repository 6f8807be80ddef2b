"""Tests for the codec instance and its context."""

import numpy as np
import pytest

from pqcodec import CodecContext, CodecConfig, ProductQuantizationCodec
from pqcodec.exceptions import PreconditionError, ConfigurationError, RegistryError

from .conftest import make_labeled_data


class TestUntrainedCodec:

    def test_construction_registers_slot(self, context):
        first = context.create_codec()
        second = context.create_codec()
        assert (first.handle.index, second.handle.index) == (0, 1)
        assert len(context.registry) == 2

    def test_encode_before_training_fails(self, context):
        codec = context.create_codec()
        assert not codec.is_trained
        with pytest.raises(PreconditionError, match="trained or loaded"):
            codec.encode(np.zeros(8))

    def test_table_before_training_fails(self, context):
        with pytest.raises(PreconditionError):
            context.create_codec().table

    def test_repr_untrained(self, context):
        assert "untrained" in repr(context.create_codec())


class TestTrainedCodec:

    def test_codebook_and_table(self, trained_context):
        ctx, codec = trained_context
        assert codec.is_trained
        assert codec.subspaces == 4
        assert codec.dimension == 8
        assert codec.codebook.shape == (4, 256, 2)
        assert codec.table.shape == (4, 65536)
        assert codec.calibrated is False

    def test_codebook_read_only(self, trained_context):
        _, codec = trained_context
        with pytest.raises(ValueError):
            codec.codebook[0, 0, 0] = 1.0

    def test_codes_in_range(self, trained_context, training_data):
        _, codec = trained_context
        data, _ = training_data
        codes = codec.encode_batch(data)
        assert codes.shape == (1000, 4)
        assert codes.dtype == np.uint8
        for row in data[:20]:
            code = codec.encode(row)
            assert len(code) == 4
            assert code.min() >= 0 and code.max() <= 255

    def test_encode_idempotent(self, trained_context, training_data):
        _, codec = trained_context
        vector = training_data[0][123]
        np.testing.assert_array_equal(codec.encode(vector), codec.encode(vector))

    def test_reconstruction_close_to_input(self, trained_context, training_data):
        _, codec = trained_context
        data, _ = training_data
        decoded = codec.decode(codec.encode_batch(data))
        assert np.mean((decoded - data) ** 2) < 0.05


class TestTrainingFailures:

    def test_indivisible_dimension_leaves_no_codebook(self, context):
        codec = context.create_codec(n=3)
        data, _ = make_labeled_data(rows=1000, dim=10)
        with pytest.raises(ConfigurationError):
            codec.train(data)

        assert not codec.is_trained
        assert context.registry.get(codec.handle).is_empty
        with pytest.raises(PreconditionError):
            codec.codebook

    def test_restore_rejects_mismatched_table(self, context):
        codec = context.create_codec()
        with pytest.raises(ConfigurationError, match="subspaces"):
            codec.restore(np.zeros((4, 256, 2)), np.zeros((3, 65536)), calibrated=False)
        assert not codec.is_trained


class TestUnload:

    def test_unload_releases_slot(self, context, training_data):
        data, _ = training_data
        codec = context.create_codec(niter=2, nredo=1)
        codec.train(data)
        codec.unload()

        assert not codec.is_trained
        assert codec.handle not in context.registry
        with pytest.raises(RegistryError):
            context.registry.table(codec.handle)

    def test_context_close_clears_registry(self):
        ctx = CodecContext()
        ProductQuantizationCodec(ctx)
        ctx.close()
        assert len(ctx.registry) == 0

    def test_context_overrides(self):
        with CodecContext(CodecConfig(n=4), parallelism=True) as ctx:
            codec = ctx.create_codec(metric="l1")
            assert ctx.parallelism is True
            assert codec.config.n == 4
            assert codec.metric.name == "l1"
            assert codec.make_builder().parallelism is True
