# src/sss_control/client.py
"""Stablecoin facade.

One `Stablecoin` is bound to a mint and to the keypair acting as operator.
Every operation follows the same path:

  validate input -> derive addresses -> build instructions -> execute -> map errors

Nothing is cached between calls; reads always go to the AccountReader. Use
`as_signer` to act as a different role holder on the same mint.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from sss_control import confidential as conf
from sss_control import roles as role_model
from sss_control.codec import check_u64
from sss_control.config import ClientConfig, default_client_config
from sss_control.crypto.keypair import Keypair
from sss_control.crypto.pubkey import Pubkey, parse_pubkey
from sss_control.error_map import map_exception
from sss_control.errors import CorruptState, PreconditionFailed, PresetMismatch, SssError, ValidationError
from sss_control.execution import AccountInfo, AccountReader, ExecutionFailure, TransactionExecutor
from sss_control.instructions import core as core_ix
from sss_control.instructions import hook as hook_ix
from sss_control.instructions import token2022 as t22
from sss_control.instructions.types import Instruction
from sss_control.logging_utils import get_logger, log_event
from sss_control.oracle import fetch_price
from sss_control.pda import TOKEN_2022_PROGRAM_ID, derive_associated_token_account, derive_blacklist, derive_config
from sss_control.presets import ExtensionType, Preset, can_mint, check_mint_extensions, features
from sss_control.schemas import BlacklistAddParams, CreateOptions, validate_model
from sss_control.state import (
    BlacklistEntry,
    MintInfo,
    RoleGrant,
    StablecoinConfig,
    TokenAccount,
    TokenAccountState,
    decode_blacklist_entry,
    decode_config,
    decode_mint,
    decode_token_account,
)

_log = get_logger("client")


def _positive(amount: Any, field: str = "amount") -> int:
    n = check_u64(amount, field)
    if n == 0:
        raise ValidationError(f"{field} must be greater than zero")
    return n


def _optional_pubkey(v: Any, field: str) -> Optional[Pubkey]:
    return None if v is None else parse_pubkey(v, field=field)


def _submit(
    executor: TransactionExecutor,
    config: ClientConfig,
    operation: str,
    instructions: Sequence[Instruction],
    signers: Sequence[Any],
    **fields: Any,
) -> str:
    log_event(_log, "operation_submitted", operation=operation, instructions=len(instructions), **fields)
    try:
        signature = executor.execute(list(instructions), list(signers))
    except SssError as e:
        log_event(_log, "operation_failed", level=logging.WARNING, operation=operation, error=str(e))
        raise
    except (ExecutionFailure, OSError) as e:
        err = map_exception(
            e,
            instructions,
            core_program_id=config.core_program_id,
            hook_program_id=config.hook_program_id,
        )
        log_event(_log, "operation_failed", level=logging.WARNING, operation=operation, error=str(err))
        raise err from e
    log_event(_log, "operation_confirmed", operation=operation, signature=signature)
    return signature


def _read(reader: AccountReader, address: Pubkey) -> Optional[AccountInfo]:
    try:
        return reader.get_account(address)
    except OSError as e:
        raise map_exception(e) from e


def _creation_flags(opts: CreateOptions, preset: Preset) -> dict:
    feats = features(preset)
    ext = opts.extensions
    if ext is None:
        return {
            "permanent_delegate": feats.permanent_delegate,
            "transfer_hook": feats.transfer_hook,
            "default_account_frozen": feats.default_account_frozen,
            "confidential": feats.confidential,
        }
    if opts.preset is not None:
        if feats.transfer_hook and not ext.transfer_hook:
            raise ValidationError("extensions conflict with preset", {"preset": preset.label, "transfer_hook": False})
        if feats.confidential and not ext.confidential_transfer:
            raise ValidationError("extensions conflict with preset", {"preset": preset.label, "confidential_transfer": False})
    frozen = ext.default_account_frozen
    if frozen is None:
        frozen = ext.transfer_hook
    return {
        "permanent_delegate": ext.permanent_delegate,
        "transfer_hook": ext.transfer_hook,
        "default_account_frozen": frozen,
        "confidential": ext.confidential_transfer,
    }


def _mint_extensions(flags: dict) -> List[ExtensionType]:
    exts = [ExtensionType.METADATA_POINTER]
    if flags["permanent_delegate"]:
        exts.append(ExtensionType.PERMANENT_DELEGATE)
    if flags["transfer_hook"]:
        exts.append(ExtensionType.TRANSFER_HOOK)
    if flags["default_account_frozen"]:
        exts.append(ExtensionType.DEFAULT_ACCOUNT_STATE)
    if flags["confidential"]:
        exts.append(ExtensionType.CONFIDENTIAL_TRANSFER_MINT)
    return exts


def creation_instructions(
    payer: Pubkey,
    mint: Pubkey,
    opts: CreateOptions,
    *,
    rent_lamports: int,
    config: Optional[ClientConfig] = None,
) -> List[Instruction]:
    """The whole atomic creation sequence for a fresh mint account.

    The payer is the temporary mint/freeze authority; both authorities move to
    the config PDA before the core program initializes.
    """
    cfg = config or default_client_config()
    preset = opts.resolved_preset()
    flags = _creation_flags(opts, preset)
    config_pda, _ = derive_config(mint, cfg.core_program_id)

    out: List[Instruction] = [
        t22.create_account(payer, mint, rent_lamports, t22.mint_space(_mint_extensions(flags)), TOKEN_2022_PROGRAM_ID),
        t22.initialize_metadata_pointer(mint, config_pda, mint),
    ]
    if flags["permanent_delegate"]:
        out.append(t22.initialize_permanent_delegate(mint, config_pda))
    if flags["transfer_hook"]:
        out.append(t22.initialize_transfer_hook(mint, config_pda, cfg.hook_program_id))
    if flags["default_account_frozen"]:
        out.append(t22.initialize_default_account_state(mint, TokenAccountState.FROZEN))
    if flags["confidential"]:
        out.append(
            t22.initialize_confidential_transfer_mint(
                mint,
                config_pda,
                auto_approve_new_accounts=opts.auto_approve_new_accounts,
                auditor_elgamal_pubkey=opts.auditor_key_bytes(),
            )
        )
    out += [
        t22.initialize_mint2(mint, opts.decimals, payer, payer),
        t22.initialize_token_metadata(
            mint,
            update_authority=config_pda,
            mint_authority=payer,
            name=opts.name,
            symbol=opts.symbol,
            uri=opts.uri,
        ),
        t22.set_authority(mint, payer, t22.AuthorityType.MINT_TOKENS, config_pda),
        t22.set_authority(mint, payer, t22.AuthorityType.FREEZE_ACCOUNT, config_pda),
    ]
    out += _program_init_instructions(payer, mint, opts, preset, flags, cfg)
    return out


def _program_init_instructions(
    payer: Pubkey,
    mint: Pubkey,
    opts: CreateOptions,
    preset: Preset,
    flags: dict,
    cfg: ClientConfig,
) -> List[Instruction]:
    out = [
        core_ix.initialize(
            payer,
            mint,
            preset=preset,
            name=opts.name,
            symbol=opts.symbol,
            uri=opts.uri,
            decimals=opts.decimals,
            supply_cap=opts.supply_cap,
            enable_permanent_delegate=flags["permanent_delegate"],
            enable_transfer_hook=flags["transfer_hook"],
            default_account_frozen=flags["default_account_frozen"],
            program_id=cfg.core_program_id,
        )
    ]
    if flags["transfer_hook"]:
        out.append(hook_ix.initialize_extra_account_metas(payer, mint, program_id=cfg.hook_program_id))
    return out


class Stablecoin:
    def __init__(
        self,
        mint: Pubkey,
        reader: AccountReader,
        executor: TransactionExecutor,
        signer: Keypair,
        *,
        config: Optional[ClientConfig] = None,
    ) -> None:
        self.mint = parse_pubkey(mint, field="mint")
        self.reader = reader
        self.executor = executor
        self.signer = signer
        self.config = config or default_client_config()
        self.config_address, _ = derive_config(self.mint, self.config.core_program_id)

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        reader: AccountReader,
        executor: TransactionExecutor,
        authority: Keypair,
        options: Any,
        *,
        mint_keypair: Optional[Keypair] = None,
        config: Optional[ClientConfig] = None,
    ) -> "Stablecoin":
        """Create a new stablecoin and return it bound to `authority`.

        With a fresh mint keypair the full creation sequence runs in one
        transaction. If the mint account already exists it must already carry
        the preset's extensions (PresetMismatch otherwise); only the program
        side is then initialized.
        """
        cfg = config or default_client_config()
        opts = validate_model(CreateOptions, options)
        preset = opts.resolved_preset()
        flags = _creation_flags(opts, preset)
        mint_kp = mint_keypair or Keypair.generate()
        mint = mint_kp.pubkey

        existing = _read(reader, mint)
        if existing is None:
            space = t22.mint_space(_mint_extensions(flags))
            try:
                rent = reader.minimum_balance_for_rent_exemption(
                    space + 4 + t22.metadata_space(opts.name, opts.symbol, opts.uri)
                )
            except OSError as e:
                raise map_exception(e) from e
            ixs = creation_instructions(authority.pubkey, mint, opts, rent_lamports=rent, config=cfg)
            signers: List[Any] = [authority, mint_kp]
        else:
            if existing.owner != TOKEN_2022_PROGRAM_ID:
                raise PreconditionFailed(
                    "mint account is not owned by the token-2022 program",
                    {"mint": str(mint), "owner": str(existing.owner)},
                    code="not_a_mint",
                )
            info = decode_mint(existing.data)
            check_mint_extensions(preset, info.extensions.keys())
            if flags["transfer_hook"] and not info.has_extension(ExtensionType.TRANSFER_HOOK):
                raise PresetMismatch("mint lacks the transfer-hook extension", {"mint": str(mint)})
            if flags["confidential"] and not info.has_extension(ExtensionType.CONFIDENTIAL_TRANSFER_MINT):
                raise PresetMismatch("mint lacks the confidential-transfer extension", {"mint": str(mint)})
            if info.decimals != opts.decimals:
                raise PreconditionFailed(
                    "mint decimals differ from requested decimals",
                    {"mint_decimals": info.decimals, "decimals": opts.decimals},
                    code="decimals_mismatch",
                )
            ixs = _program_init_instructions(authority.pubkey, mint, opts, preset, flags, cfg)
            signers = [authority]

        _submit(executor, cfg, "create", ixs, signers, mint=str(mint), preset=preset.label)
        log_event(_log, "stablecoin_created", mint=str(mint), preset=preset.label, authority=str(authority.pubkey))
        return cls(mint, reader, executor, authority, config=cfg)

    @classmethod
    def load(
        cls,
        reader: AccountReader,
        executor: TransactionExecutor,
        signer: Keypair,
        mint: Any,
        *,
        config: Optional[ClientConfig] = None,
    ) -> "Stablecoin":
        coin = cls(parse_pubkey(mint, field="mint"), reader, executor, signer, config=config)
        coin.info()
        return coin

    def as_signer(self, signer: Keypair) -> "Stablecoin":
        return Stablecoin(self.mint, self.reader, self.executor, signer, config=self.config)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def info(self) -> StablecoinConfig:
        acct = _read(self.reader, self.config_address)
        if acct is None:
            raise PreconditionFailed(
                "no stablecoin config for mint",
                {"mint": str(self.mint), "config": str(self.config_address)},
                code="config_not_found",
            )
        if acct.owner != self.config.core_program_id:
            raise CorruptState("config account has unexpected owner", {"owner": str(acct.owner)})
        cfg = decode_config(acct.data)
        if cfg.mint != self.mint:
            raise CorruptState("config belongs to a different mint", {"mint": str(cfg.mint)})
        return cfg

    def get_total_supply(self) -> int:
        return self.info().current_supply

    def mint_info(self) -> MintInfo:
        acct = _read(self.reader, self.mint)
        if acct is None:
            raise PreconditionFailed("mint account not found", {"mint": str(self.mint)}, code="mint_not_found")
        return decode_mint(acct.data)

    def token_account(self, owner: Any) -> Pubkey:
        return derive_associated_token_account(parse_pubkey(owner, field="owner"), self.mint)

    def get_token_account(self, address: Any) -> Optional[TokenAccount]:
        acct = _read(self.reader, parse_pubkey(address))
        if acct is None:
            return None
        return decode_token_account(acct.data)

    def balance_of(self, owner: Any) -> int:
        acct = self.get_token_account(self.token_account(owner))
        return 0 if acct is None else acct.amount

    # ------------------------------------------------------------------
    # supply operations
    # ------------------------------------------------------------------

    def open_token_account(self, owner: Any) -> str:
        owner_pk = parse_pubkey(owner, field="owner")
        ix = t22.create_associated_token_account_idempotent(self.signer.pubkey, owner_pk, self.mint)
        return self._send("open_token_account", [ix], owner=str(owner_pk))

    def mint_to(self, recipient: Any, amount: Any, *, price_feed: Any = None) -> str:
        """Mint to the recipient's associated token account, opening it if needed.

        With `price_feed` the program checks the supply cap as a USD amount
        converted at that Pyth price.
        """
        n = _positive(amount)
        owner = parse_pubkey(recipient, field="recipient")
        feed = _optional_pubkey(price_feed, "price_feed")
        ata = derive_associated_token_account(owner, self.mint)
        ixs = [
            t22.create_associated_token_account_idempotent(self.signer.pubkey, owner, self.mint),
            core_ix.mint_tokens(self.signer.pubkey, self.mint, ata, n, price_feed=feed, program_id=self.config.core_program_id),
        ]
        return self._send("mint", ixs, to=str(ata), amount=n, price_feed=str(feed) if feed else None)

    def mint_tokens(self, token_account: Any, amount: Any, *, price_feed: Any = None) -> str:
        n = _positive(amount)
        to = parse_pubkey(token_account, field="token_account")
        feed = _optional_pubkey(price_feed, "price_feed")
        ix = core_ix.mint_tokens(self.signer.pubkey, self.mint, to, n, price_feed=feed, program_id=self.config.core_program_id)
        return self._send("mint", [ix], to=str(to), amount=n, price_feed=str(feed) if feed else None)

    def preview_mint(self, amount: Any, *, price_feed: Any = None) -> bool:
        """Would a mint of `amount` pass the supply cap right now?

        Quotas and pause state are not considered.
        """
        n = _positive(amount)
        feed = _optional_pubkey(price_feed, "price_feed")
        cfg = self.info()
        price = None
        if feed is not None and cfg.supply_cap is not None:
            try:
                price = fetch_price(self.reader, feed)
            except OSError as e:
                raise map_exception(e) from e
        return can_mint(cfg.total_minted, cfg.total_burned, cfg.supply_cap, n, price=price, decimals=cfg.decimals)

    def burn(self, amount: Any, *, source: Any = None) -> str:
        """Burn from `source` (default: the signer's own token account)."""
        n = _positive(amount)
        src = parse_pubkey(source, field="source") if source is not None else self.token_account(self.signer.pubkey)
        ix = core_ix.burn_tokens(self.signer.pubkey, self.mint, src, n, program_id=self.config.core_program_id)
        return self._send("burn", [ix], source=str(src), amount=n)

    def freeze(self, token_account: Any) -> str:
        acct = parse_pubkey(token_account, field="token_account")
        ix = core_ix.freeze_account(self.signer.pubkey, self.mint, acct, program_id=self.config.core_program_id)
        return self._send("freeze", [ix], token_account=str(acct))

    def thaw(self, token_account: Any) -> str:
        acct = parse_pubkey(token_account, field="token_account")
        ix = core_ix.thaw_account(self.signer.pubkey, self.mint, acct, program_id=self.config.core_program_id)
        return self._send("thaw", [ix], token_account=str(acct))

    def pause(self) -> str:
        return self._send("pause", [core_ix.pause(self.signer.pubkey, self.mint, program_id=self.config.core_program_id)])

    def unpause(self) -> str:
        return self._send("unpause", [core_ix.unpause(self.signer.pubkey, self.mint, program_id=self.config.core_program_id)])

    def seize(self, source: Any, destination: Any, amount: Any) -> str:
        """Permanent-delegate transfer. Works while paused."""
        n = _positive(amount)
        src = parse_pubkey(source, field="source")
        dst = parse_pubkey(destination, field="destination")
        ix = core_ix.seize(self.signer.pubkey, self.mint, src, dst, n, program_id=self.config.core_program_id)
        return self._send("seize", [ix], source=str(src), destination=str(dst), amount=n)

    # ------------------------------------------------------------------
    # admin
    # ------------------------------------------------------------------

    def update_supply_cap(self, new_supply_cap: Optional[int]) -> str:
        if new_supply_cap is not None:
            check_u64(new_supply_cap, "new_supply_cap")
        ix = core_ix.update_supply_cap(self.signer.pubkey, self.mint, new_supply_cap, program_id=self.config.core_program_id)
        return self._send("update_supply_cap", [ix], new_supply_cap=new_supply_cap)

    def update_minter(self, minter: Any, new_quota: Optional[int]) -> str:
        if new_quota is not None:
            check_u64(new_quota, "new_quota")
        who = parse_pubkey(minter, field="minter")
        ix = core_ix.update_minter(self.signer.pubkey, self.mint, who, new_quota, program_id=self.config.core_program_id)
        return self._send("update_minter", [ix], minter=str(who), new_quota=new_quota)

    def transfer_authority(self, new_authority: Any) -> str:
        who = parse_pubkey(new_authority, field="new_authority")
        ix = core_ix.transfer_authority(self.signer.pubkey, self.mint, who, program_id=self.config.core_program_id)
        return self._send("transfer_authority", [ix], new_authority=str(who))

    # ------------------------------------------------------------------
    # roles
    # ------------------------------------------------------------------

    def grant_role(self, address: Any, role: Any) -> str:
        r = role_model.parse_role(role)
        who = parse_pubkey(address)
        ix = role_model.grant(self.signer.pubkey, self.mint, who, r, program_id=self.config.core_program_id)
        return self._send("grant_role", [ix], address=str(who), role=r.label)

    def revoke_role(self, address: Any, role: Any) -> str:
        r = role_model.parse_role(role)
        who = parse_pubkey(address)
        ix = role_model.revoke(self.signer.pubkey, self.mint, who, r, program_id=self.config.core_program_id)
        return self._send("revoke_role", [ix], address=str(who), role=r.label)

    def has_role(self, address: Any, role: Any) -> bool:
        r = role_model.parse_role(role)
        who = parse_pubkey(address)
        try:
            return role_model.check(self.reader, self.config_address, who, r, program_id=self.config.core_program_id)
        except OSError as e:
            raise map_exception(e) from e

    def get_role(self, address: Any, role: Any) -> Optional[RoleGrant]:
        r = role_model.parse_role(role)
        who = parse_pubkey(address)
        try:
            return role_model.fetch_role(self.reader, self.config_address, who, r, program_id=self.config.core_program_id)
        except OSError as e:
            raise map_exception(e) from e

    # ------------------------------------------------------------------
    # blacklist (sss-2)
    # ------------------------------------------------------------------

    def _require_hook(self) -> None:
        if not self.info().enable_transfer_hook:
            raise PreconditionFailed(
                "blacklist requires a transfer-hook enabled stablecoin",
                {"mint": str(self.mint)},
                code="transfer_hook_disabled",
            )

    def blacklist_add(self, address: Any, reason: str = "") -> str:
        who = parse_pubkey(address)
        params = validate_model(BlacklistAddParams, {"address": str(who), "reason": reason})
        self._require_hook()
        ix = hook_ix.add_to_blacklist(
            self.signer.pubkey,
            self.mint,
            who,
            params.reason,
            program_id=self.config.hook_program_id,
            core_program_id=self.config.core_program_id,
        )
        return self._send("blacklist_add", [ix], address=str(who))

    def blacklist_remove(self, address: Any) -> str:
        who = parse_pubkey(address)
        self._require_hook()
        ix = hook_ix.remove_from_blacklist(
            self.signer.pubkey,
            self.mint,
            who,
            program_id=self.config.hook_program_id,
            core_program_id=self.config.core_program_id,
        )
        return self._send("blacklist_remove", [ix], address=str(who))

    def is_blacklisted(self, address: Any) -> bool:
        entry, _ = derive_blacklist(self.mint, parse_pubkey(address), self.config.hook_program_id)
        return _read(self.reader, entry) is not None

    def get_blacklist_entry(self, address: Any) -> Optional[BlacklistEntry]:
        entry, _ = derive_blacklist(self.mint, parse_pubkey(address), self.config.hook_program_id)
        acct = _read(self.reader, entry)
        return None if acct is None else decode_blacklist_entry(acct.data)

    # ------------------------------------------------------------------
    # confidential balances (sss-3)
    # ------------------------------------------------------------------

    def confidential_state(self, owner: Any = None, *, keys: Optional[conf.BalanceKeys] = None) -> conf.ConfidentialAccountState:
        who = parse_pubkey(owner, field="owner") if owner is not None else self.signer.pubkey
        try:
            return conf.load_state(self.reader, self.mint, who, keys=keys)
        except OSError as e:
            raise map_exception(e) from e

    def deposit(self, amount: Any) -> str:
        n = _positive(amount)
        state = self.confidential_state()
        ix = conf.plan_deposit(state, n, self.info().decimals)
        return self._send("confidential_deposit", [ix], token_account=str(state.token_account), amount=n)

    def apply_pending(self, keys: conf.BalanceKeys) -> str:
        state = self.confidential_state(keys=keys)
        ix = conf.plan_apply_pending(state, keys)
        return self._send(
            "confidential_apply_pending",
            [ix],
            token_account=str(state.token_account),
            counter=state.pending_balance_credit_counter,
        )

    def withdraw(self, amount: Any, proofs: conf.ProofProvider, *, keys: Optional[conf.BalanceKeys] = None) -> str:
        n = _positive(amount)
        state = self.confidential_state(keys=keys)
        ixs = conf.plan_withdraw(state, n, self.info().decimals, proofs)
        return self._send("confidential_withdraw", ixs, token_account=str(state.token_account), amount=n)

    def confidential_transfer(
        self,
        recipient: Any,
        amount: Any,
        proofs: conf.ProofProvider,
        *,
        keys: Optional[conf.BalanceKeys] = None,
    ) -> str:
        n = _positive(amount)
        source = self.confidential_state(keys=keys)
        destination = self.confidential_state(parse_pubkey(recipient, field="recipient"))
        ixs = conf.plan_transfer(source, destination, n, proofs)
        return self._send(
            "confidential_transfer",
            ixs,
            source=str(source.token_account),
            destination=str(destination.token_account),
        )

    # ------------------------------------------------------------------

    def _send(self, operation: str, instructions: Sequence[Instruction], **fields: Any) -> str:
        return _submit(
            self.executor,
            self.config,
            operation,
            instructions,
            [self.signer],
            mint=str(self.mint),
            **fields,
        )


__all__ = ["Stablecoin", "creation_instructions"]
