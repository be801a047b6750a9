# threshold-ecdsa

Threshold ECDSA on secp256k1. A group of `n` parties jointly generates a key
so that any `t + 1` of them can produce an ordinary ECDSA signature, while no
single party ever holds the whole private key.

## What is in the package

- `threshold_ecdsa.gg18` holds the GG18 protocol steps: `Parameters`, `Keys`,
  `SharedKeys`, `PartyPrivate`, `SignKeys`, `LocalSignature`, the message
  types (`KeyGenBroadcastMessage1`, `KeyGenDecommitMessage1`, `Phase5Com1`,
  ...), `SignatureRecid` and the `verify` function.
- `threshold_ecdsa.blame` holds `GlobalStatePhase7`, whose `phase7_blame`
  checks every signer's published values, plus the helpers `ecddh_proof` and
  `extract_paillier_randomness`.
- Building blocks: `curve` (`Scalar`, `Point`, `sum_points`,
  `sum_scalars`), `paillier` (`EncryptionKey`, `DecryptionKey`,
  `generate_keypair`, `generate_keypair_safe_primes`), `vss`
  (`VerifiableSS`, `ShamirParameters`), `proofs` (`DLogProof`,
  `HomoElGamalProof`, `ECDDHProof`, `CorrectKeyProof`) and `hashing`
  (`sample`, `hash_points`, `hash_ints`, `create_commitment`).
- Coordination: a key/value board (`kv_board.SignupBoard` and its HTTP app),
  a client for it with AES-GCM helpers (`messaging.BoardClient`,
  `aes_encrypt`, `aes_decrypt`, `check_sig`), a GG18 key generation party
  (`gg18_keygen.run_keygen`), a room-based message relay with server-sent
  events (`rooms`) and its client (`room_client.SmClient`,
  `join_computation`).

Failures are raised as exceptions: `ProtocolError` carries an `ErrorKind`
(`InvalidKey`, `InvalidSS`, `InvalidCom`, `InvalidSig`, ...). Phase 7 blame
always ends by raising `BlameError`, whose `bad_actors` lists the indices of
the parties whose values failed the check (empty when nobody cheated).

## Installation

```
pip install .
```

## Key generation in one process

```python
from threshold_ecdsa.gg18 import Keys, Parameters

params = Parameters(threshold=1, share_count=2)
keys = [Keys.create(i) for i in range(2)]
messages = [k.phase1_broadcast_phase3_proof_of_correct_key() for k in keys]
bc1_vec = [bc for bc, _ in messages]
decom_vec = [decom for _, decom in messages]

vss_scheme, shares, index = keys[0].phase1_verify_com_phase3_verify_correct_key_phase2_distribute(
    params, decom_vec, bc1_vec
)
```

`Keys.create` generates a 2048-bit Paillier key, which takes a moment. Each
party then calls `phase2_verify_vss_construct_keypair_phase3_pok_dlog` with
the shares it received and its index counted from 1, and the group checks
the resulting proofs with `Keys.verify_dlog_proofs`. Signing follows the
phases of `SignKeys` and `LocalSignature`; `LocalSignature.output_signature`
returns a low-s `SignatureRecid` that is checked with `verify`.

## Key generation across processes

Put a `params.json` file in the working directory:

```json
{"parties": "3", "threshold": "1"}
```

Start the board (options: `--host`, `--port`, default 8001, and `--params`):

```
threshold-ecdsa-board
```

Then, in one terminal per party, run the key generation party with the board
address and the file to write its key material to:

```
threshold-ecdsa-keygen http://127.0.0.1:8001 keys1.json
```

`--params` points it at another parameters file. The output file holds a
JSON list: the party's keys, its shared keys, its party number, every
party's VSS commitments, every party's Paillier public key and the joint
public key.

## Room relay

The relay hands out party indices per room and forwards every broadcast to
all subscribers of the room as server-sent events:

```
threshold-ecdsa-rooms
```

It listens on `--host` and `--port` (default 8000). From the command line:

```
threshold-ecdsa-room-client -a http://localhost:8000/ -r demo issue-idx
threshold-ecdsa-room-client -a http://localhost:8000/ -r demo broadcast -m hello
threshold-ecdsa-room-client -a http://localhost:8000/ -r demo subscribe
```

## What the package does not do

- There is no command for signing across processes; GG18 signing is only
  available as the library steps in `threshold_ecdsa.gg18`.
- There are no GG20 key generation or signing protocols; `join_computation`
  gives a party its index, its incoming messages and a sender, but nothing
  here runs a protocol over them.
- Of the GG20 blame checks only phase 7 is provided.

## Tests

```
pip install .[test]
pytest
```