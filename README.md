# divinebridge

Building blocks for bridging Nostr video events into the AT Protocol network:
shared data types, a feed generator application, label signing and querying,
a read-only labeler application, the clients and background runner of a
handle gateway, and a small handle admin service for local networks.

## Modules

- `divinebridge.types` – shared bridge types: `NostrEvent` (with `to_dict` /
  `from_dict`), `VideoMeta`, `BlobRef` and `CidLink` (serialised in the
  ATProto blob shape `{"$type": "blob", "ref": {"$link": ...}, "mimeType": ...,
  "size": ...}`), `PdsRecord`, the string enums `PublishState`,
  `RecordStatus`, `ModerationAction`, `ModerationOrigin`, and
  `IngestCheckpoint` (its timestamp must be timezone-aware and is kept in UTC).
- `divinebridge.labels` – `com.atproto.label` records (`AtprotoLabel`) and the
  `subscribeLabels` stream messages `LabelsMessage` and `InfoMessage`, parsed
  from a mapping or JSON text with `parse_subscribe_labels_message`.
- `divinebridge.feed_skeleton` – the feed descriptions
  (`describe_feed_generator`) and `feed_skeleton(store, feed, limit)`, which
  reads posts from a `FeedStore` and raises `UnknownFeedError` for a feed it
  does not serve.
- `divinebridge.feedgen_app` – `create_app(store, viewer_origin=None)`, an
  ASGI application for the feed generator.
- `divinebridge.label_signing` – `UnsignedLabel`, `encode_label` (DAG-CBOR),
  `sign_label` (deterministic ES256K, low-S, base64 of the 64-byte
  signature) and `signing_key_from_hex`.
- `divinebridge.query_labels` – `LabelerEvent`, `build_query_response`,
  `matches_uri_patterns` and `query_labels`.
- `divinebridge.labeler_app` – `create_app(store, labeler_did)`, an ASGI
  application serving labels.
- `divinebridge.account_links` – `ProvisioningState` and `AccountLinkRecord`.
- `divinebridge.gateway_clients` – `KeycastClient`, `NameServerClient`,
  `ProvisioningClient` and `SyncError`.
- `divinebridge.provision_runner` – `ProvisionRunner`.
- `divinebridge.localnet_admin` – the localnet handle admin service and its
  `divinebridge-localnet-admin` command.

## Working with labels

```python
from divinebridge.labels import AtprotoLabel, parse_subscribe_labels_message

label = AtprotoLabel.from_dict({
    "ver": 1,
    "src": "did:plc:divine-labeler",
    "uri": "at://did:plc:user123/app.bsky.feed.post/abc123",
    "val": "nudity",
    "neg": False,
    "cts": "2026-03-20T12:00:00.000Z",
})
label.targets_post()      # True
label.targets_account()   # False
label.is_system_label()   # False; True for values such as "!hide"
label.subject_did()       # "did:plc:user123"
label.to_dict()           # unset ver, cid, exp and sig are left out

message = parse_subscribe_labels_message({"seq": 42, "labels": [label.to_dict()]})
# LabelsMessage(seq=42, labels=[...]); {"name": ...} parses as InfoMessage
```

Malformed input raises `ValueError`.

## Signing labels

```python
from divinebridge.label_signing import UnsignedLabel, sign_label, signing_key_from_hex

key = signing_key_from_hex("01" * 32)
unsigned = UnsignedLabel(
    ver=1,
    src="did:plc:test-labeler",
    uri="at://did:plc:user1/app.bsky.feed.post/rkey1",
    val="nudity",
    neg=False,
    cts="2026-03-20T12:00:00.000Z",
)
signature = sign_label(unsigned, key)   # base64 string; the same label always signs the same
```

The label is encoded as DAG-CBOR (map keys ordered by length, then bytewise),
hashed with SHA-256 and signed with RFC 6979 ECDSA over secp256k1.
`signing_key_from_hex` raises `ValueError` for invalid hex, a length other
than 32 bytes, or a scalar outside the curve order.

## Serving a feed

Implement `FeedStore` with two async methods, `latest_posts(limit)` and
`trending_posts(limit)`, each returning a list of post AT URIs, and pass it
to `divinebridge.feedgen_app.create_app`:

- `GET /` – an HTML page describing the feeds.
- `GET /health`, `GET /health/ready` – `200`.
- `GET /xrpc/app.bsky.feed.describeFeedGenerator` – the generator DID
  `did:plc:divine.feed` and its two feeds,
  `at://did:plc:divine.feed/app.bsky.feed.generator/latest` and
  `.../trending`.
- `GET /xrpc/app.bsky.feed.getFeedSkeleton?feed=<uri>&limit=<n>` –
  `{"feed": [{"post": ...}, ...]}`; `limit` defaults to 25. A missing `feed`
  or a non-numeric `limit` answers `400`; an unknown feed, or any store
  failure, answers `404`.

With `viewer_origin` set, CORS allows that origin only (with credentials);
with `None`, any origin is allowed. Run the application with any ASGI server,
for example uvicorn.

## Serving labels

`divinebridge.labeler_app.create_app(store, labeler_did)` needs a store with
`get_events_after(after_seq, limit)` returning `LabelerEvent` objects:

- `GET /` – an HTML page showing the labeler DID.
- `GET /health`, `GET /health/ready` – `200`.
- `GET /xrpc/com.atproto.label.queryLabels` – `{"labels": [...], "cursor": "<seq>"}`.
  `limit` defaults to 50 and is capped at 250; `cursor` is the sequence
  number to continue after (an unparsable cursor starts from 0);
  `uriPatterns` is a comma-separated list where a trailing `*` matches by
  prefix and anything else must match exactly. A non-integer `limit` answers
  `400`; a store failure answers `500`.

`query_labels(store, uri_patterns, limit, cursor)` gives the same result as a
plain dictionary, and `build_query_response(events)` returns the compact JSON
body and the cursor for a list of events.

## Handle gateway pieces

`AccountLinkRecord.from_row(row)` builds a record from a stored row (an
unknown `provisioning_state` counts as `FAILED`), and `to_dict()` renders
timestamps in RFC 3339 UTC with a `Z` suffix.

The clients post JSON with a bearer token and raise `SyncError` when the
service cannot be reached or answers with an error status. Each takes an
optional `httpx.AsyncClient`; without one, a client is opened per request.

```python
from divinebridge.gateway_clients import KeycastClient, NameServerClient, ProvisioningClient
from divinebridge.provision_runner import ProvisionRunner

runner = ProvisionRunner(
    store,   # provides mark_ready(nostr_pubkey, did) and mark_failed(nostr_pubkey, did, error)
    ProvisioningClient("http://localhost:4000/provision", "token"),
    NameServerClient("http://localhost:4001/sync", "token"),
    KeycastClient("http://localhost:4002/sync", "token"),
)
await runner.run_once(nostr_pubkey, "alice.divine.video")
```

`run_once` asks the provisioning service for a DID, then marks the link ready
and syncs `ready` to Keycast and to the name server (which receives the first
label of the handle). If provisioning fails, it marks the link failed with
the error message and syncs `failed` instead. `enqueue` starts the same work
as a background task on the running event loop and logs failures;
`replay_pending(pending)` runs it for each `(nostr_pubkey, handle)` pair,
logging failures, and returns how many pairs it saw.

## Local network handle admin

```
divinebridge-localnet-admin
```

The service listens on `LOCALNET_ADMIN_BIND_ADDR` (default `0.0.0.0:3000`)
and is configured from the environment:

| Variable                     | Default        |
|------------------------------|----------------|
| `LOCALNET_ADMIN_DATA_DIR`    | `/data`        |
| `LOCALNET_ADMIN_ZONE_DIR`    | `/zones`       |
| `LOCALNET_ADMIN_DOMAIN`      | `divine.test`  |
| `LOCALNET_ADMIN_WILDCARD_IP` | `100.64.0.10`  |

Endpoints:

- `GET /health` – `{"status": "ok"}`.
- `POST /api/handles` with `{"name": "alice", "did": "did:plc:alice123"}` –
  creates or replaces the record and answers `201` with
  `{"name": "alice", "handle": "alice.divine.test", "did": "did:plc:alice123"}`.
  The body must be sent as `application/json` (otherwise `415`).
- `GET /api/handles/{name}` – the stored record, or `404`.

Names must be non-empty, made of lowercase ASCII letters, digits and
hyphens, and must not start or end with a hyphen; DIDs must start with
`did:`. Invalid input is answered with `400` and `{"error": "..."}`. The
handle store (`handles.json`) and the zone file (`db.<domain>`, with an `A`
record and an `_atproto` TXT record per handle) are written on start-up and
rewritten atomically on every change. `create_app(config)`, `AppConfig` and
`HandleStore` are available for use from code.

## What this package does not do

- The labeler application only serves labels. It has no endpoint that takes
  moderation results, and nothing in the package turns such results into
  signed labels and stores them.
- There is no HTTP application for the handle gateway: no opt-in, provision,
  status, disable or export endpoints. Only the record type, the service
  clients and the `ProvisionRunner` are provided.
- There is no database storage. Feed stores, labeler event stores and
  account-link stores are supplied by the caller.
- Only the localnet admin service has a command; the feed generator and the
  labeler are ASGI applications that you run yourself.