"""Tests for embedding clients."""

from unittest.mock import Mock

import pytest
import requests

from memvault.config import MemvaultConfig
from memvault.errors import ConfigError, EmbeddingResponseError
from memvault.memory.embeddings import (
    HashingEmbeddingClient,
    VoyageEmbeddingClient,
    get_embedding_client,
)


def _voyage_response(vectors, *, reverse=False):
    items = [{"object": "embedding", "index": i, "embedding": v} for i, v in enumerate(vectors)]
    if reverse:
        items = list(reversed(items))
    response = Mock()
    response.status_code = 200
    response.json.return_value = {"data": items, "model": "voyage-3-lite"}
    response.raise_for_status.return_value = None
    return response


def _echo_session(dim: int):
    """Session whose post() returns one vector per input, tagged with its position."""
    session = Mock(spec=requests.Session)

    def post(url, json, headers, timeout):
        vectors = [[float(len(t))] + [0.0] * (dim - 1) for t in json["input"]]
        return _voyage_response(vectors)

    session.post.side_effect = post
    return session


def test_empty_input_makes_no_call():
    session = Mock(spec=requests.Session)
    client = VoyageEmbeddingClient("key", dim=4, session=session)
    assert client.embed([]) == []
    session.post.assert_not_called()


def test_batches_of_at_most_128_with_delay_between():
    sleeps = []
    session = _echo_session(4)
    client = VoyageEmbeddingClient("key", dim=4, session=session, sleep=sleeps.append)

    texts = ["t" * (i % 7 + 1) for i in range(300)]
    vectors = client.embed(texts)

    assert len(vectors) == 300
    assert [v[0] for v in vectors] == [float(len(t)) for t in texts]
    batch_sizes = [len(c.kwargs["json"]["input"]) for c in session.post.call_args_list]
    assert batch_sizes == [128, 128, 44]
    # Delay only between batches, never after the last one.
    assert sleeps == [0.2, 0.2]


def test_single_batch_has_no_delay():
    sleeps = []
    client = VoyageEmbeddingClient("key", dim=4, session=_echo_session(4), sleep=sleeps.append)
    client.embed(["a", "b"])
    assert sleeps == []


def test_mode_sets_input_type_and_auth_header():
    session = _echo_session(4)
    client = VoyageEmbeddingClient("secret", model="voyage-3-lite", dim=4, session=session)

    client.embed_query("where is the pasta recipe?")

    call = session.post.call_args
    assert call.args[0] == VoyageEmbeddingClient.API_URL
    assert call.kwargs["json"] == {
        "model": "voyage-3-lite",
        "input": ["where is the pasta recipe?"],
        "input_type": "query",
    }
    assert call.kwargs["headers"]["Authorization"] == "Bearer secret"


def test_unknown_mode_rejected():
    client = HashingEmbeddingClient(8)
    with pytest.raises(ValueError, match="Unknown embedding mode"):
        client.embed(["x"], mode="search")


def test_response_order_follows_index_field():
    session = Mock(spec=requests.Session)
    session.post.return_value = _voyage_response([[1.0, 0.0], [0.0, 1.0]], reverse=True)
    client = VoyageEmbeddingClient("key", dim=2, session=session)

    assert client.embed(["first", "second"]) == [[1.0, 0.0], [0.0, 1.0]]


def test_http_error_propagates_without_retry():
    session = Mock(spec=requests.Session)
    response = Mock()
    response.raise_for_status.side_effect = requests.HTTPError("429 Too Many Requests")
    session.post.return_value = response
    client = VoyageEmbeddingClient("key", dim=4, session=session)

    with pytest.raises(requests.HTTPError):
        client.embed(["a"])
    assert session.post.call_count == 1


def test_wrong_dimension_rejected():
    session = Mock(spec=requests.Session)
    session.post.return_value = _voyage_response([[1.0, 2.0, 3.0]])
    client = VoyageEmbeddingClient("key", dim=4, session=session)

    with pytest.raises(EmbeddingResponseError):
        client.embed(["a"])


def test_count_mismatch_rejected():
    session = Mock(spec=requests.Session)
    session.post.return_value = _voyage_response([[1.0, 0.0]])
    client = VoyageEmbeddingClient("key", dim=2, session=session)

    with pytest.raises(EmbeddingResponseError, match="1 vectors for 2 texts"):
        client.embed(["a", "b"])


def test_voyage_requires_key():
    with pytest.raises(ValueError, match="VOYAGE_API_KEY"):
        VoyageEmbeddingClient("")


def test_batch_size_capped_at_128():
    with pytest.raises(ValueError):
        HashingEmbeddingClient(8, batch_size=129)


def test_hashing_embedder_is_deterministic_and_normalised():
    client = HashingEmbeddingClient(64)
    a = client.embed_text("Pasta al Pomodoro")
    b = client.embed_text("Pasta al Pomodoro")
    assert a == b
    assert len(a) == 64
    assert abs(sum(x * x for x in a) - 1.0) < 1e-9
    assert client.embed_text("") == [0.0] * 64


def test_hashing_embedder_batches_like_remote_client():
    sleeps = []
    client = HashingEmbeddingClient(16, batch_size=2, batch_delay_ms=50, sleep=sleeps.append)
    out = client.embed(["a", "b", "c", "d", "e"])
    assert len(out) == 5
    assert client.calls == [(2, "document"), (2, "document"), (1, "document")]
    assert sleeps == [0.05, 0.05]


def test_get_embedding_client_degrades_without_credential():
    cfg = MemvaultConfig()
    assert get_embedding_client(cfg, "auto") is None
    with pytest.raises(ConfigError):
        get_embedding_client(cfg, "voyage")
    assert isinstance(get_embedding_client(cfg, "fake"), HashingEmbeddingClient)


def test_get_embedding_client_uses_config():
    cfg = MemvaultConfig(voyage_api_key="k", embedding_batch_size=64, embedding_batch_delay_ms=10)
    client = get_embedding_client(cfg)
    assert isinstance(client, VoyageEmbeddingClient)
    assert client.batch_size == 64
    assert client.batch_delay_ms == 10
    assert client.dim == 1024
    with pytest.raises(ConfigError):
        get_embedding_client(cfg, "openai")
