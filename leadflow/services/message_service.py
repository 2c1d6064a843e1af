"""CRM message formatting — one readable summary per lead.

Same person → a single block under "Telefone e e-mail da mesma pessoa".
Different people → a warning header and one separated block per person,
labelled with the channel (phone / email) that resolved it. A person who
could not be enriched still gets a block stating why.
"""

import re

_RENDA_MULTIPLIER = 1.9
_RANGE_VALUE = re.compile(r"R\$\s*(\d+)")


def _text(value) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _scale_range(text: str, factor: float = _RENDA_MULTIPLIER) -> str:
    """Scale every R$ amount in a range, e.g. "De R$ 1630 até R$ 4082"."""
    return _RANGE_VALUE.sub(lambda m: f"R$ {float(m.group(1)) * factor:.2f}", text)


def _format_renda(raw) -> str:
    s = _text(raw) or ""
    try:
        return f"R$ {float(s.replace(',', '.')) * _RENDA_MULTIPLIER:.2f}"
    except ValueError:
        return f"R$ {s}"


def format_profile(payload: dict) -> str:
    lines = ["✅ DADOS PESSOAIS"]

    basic = payload.get("DadosBasicos") or {}
    for label, key in (
        ("Nome", "nome"),
        ("CPF", "cpf"),
        ("Data Nascimento", "dataNascimento"),
        ("Sexo", "sexo"),
        ("Mãe", "nomeMae"),
    ):
        value = _text(basic.get(key))
        if value:
            lines.append(f"{label}: {value}")

    econ = payload.get("DadosEconomicos")
    if isinstance(econ, dict) and econ:
        lines += ["", "💰 DADOS FINANCEIROS"]
        if _text(econ.get("renda")):
            lines.append(f"Renda: {_format_renda(econ['renda'])}")
        poder = econ.get("poderAquisitivo") or {}
        if isinstance(poder, dict):
            if _text(poder.get("poderAquisitivoDescricao")):
                lines.append(f"Poder Aquisitivo: {poder['poderAquisitivoDescricao']}")
            if _text(poder.get("faixaPoderAquisitivo")):
                lines.append(f"Faixa de Renda: {_scale_range(poder['faixaPoderAquisitivo'])}")
        score = econ.get("score") or {}
        if isinstance(score, dict):
            if _text(score.get("scoreCSBA")):
                lines.append(f"Score de Crédito: {score['scoreCSBA']}")
            if _text(score.get("scoreCSBAFaixaRisco")):
                lines.append(f"Risco: {score['scoreCSBAFaixaRisco']}")

    emails = [e for e in payload.get("emails") or [] if isinstance(e, dict) and _text(e.get("email"))]
    if emails:
        lines += ["", "📧 EMAILS"]
        for i, e in enumerate(emails[:3], 1):
            lines.append(f"{i}. {e['email']} ({_text(e.get('prioridade')) or 'N/A'})")

    phones = [t for t in payload.get("telefones") or [] if isinstance(t, dict) and _text(t.get("telefone"))]
    if phones:
        lines += ["", "📱 TELEFONES"]
        for i, t in enumerate(phones[:3], 1):
            whats = " ✅" if _text(t.get("whatsapp")) == "SIM" else ""
            lines.append(f"{i}. {t['telefone']} - {_text(t.get('tipo')) or 'N/A'}{whats}")

    addresses = [a for a in payload.get("enderecos") or [] if isinstance(a, dict)]
    if addresses:
        lines += ["", "🏠 ENDEREÇOS"]
        for i, a in enumerate(addresses[:2], 1):
            street = " ".join(p for p in (_text(a.get("logradouro")), _text(a.get("logradouroNumero"))) if p)
            lines.append(
                f"{i}. {street}, {_text(a.get('bairro')) or ''} - "
                f"{_text(a.get('cidade')) or ''}/{_text(a.get('uf')) or ''} - CEP: {_text(a.get('cep')) or ''}"
            )

    companies = [c for c in payload.get("empresas") or [] if isinstance(c, dict)]
    if companies:
        lines += ["", "🏢 EMPRESAS"]
        for i, c in enumerate(companies[:3], 1):
            lines.append(f"{i}. CNPJ: {_text(c.get('cnpj')) or ''} - {_text(c.get('relacao')) or 'SOCIO'}")

    return "\n".join(lines) + "\n"


_STATUS_NOTES = {
    "failed": "❌ Não foi possível consultar os dados desta pessoa",
    "not_found": "🔍 Nenhum dado encontrado para esta pessoa",
    "suppressed": "🕒 Dados já enviados recentemente, consulta não repetida",
}


def format_message(
    profiles: list[tuple[str, dict]],
    same_person: bool,
    phone: str | None = None,
    email: str | None = None,
    different_people: bool = False,
    unavailable: list[tuple[str, str]] | None = None,
) -> str:
    """Build the CRM message.

    profiles is [(channel, payload)] for every enriched identity, channel one
    of "phone", "email" or "both". unavailable is [(channel, status)] for the
    identities that were not enriched (failed, not_found, suppressed).

    When phone and email belong to different people the warning header is
    always shown and every person gets a block, enriched or not.
    """
    unavailable = unavailable or []
    if not profiles and not unavailable:
        return ""
    if not different_people:
        if not profiles:
            return ""
        header = "📞📧 Telefone e e-mail da mesma pessoa" if same_person else _single_header(profiles[0][0], phone, email)
        return f"{header}\n\n{format_profile(profiles[0][1])}"

    people = [(channel, format_profile(payload)) for channel, payload in profiles]
    people += [(channel, _STATUS_NOTES.get(status, status) + "\n") for channel, status in unavailable]
    # phone-resolved person first
    people.sort(key=lambda p: p[0] != "phone")

    blocks = ["⚠️ Telefone e e-mail relacionados a PESSOAS DIFERENTES!\n"]
    for n, (channel, body) in enumerate(people, 1):
        label = f"Telefone: {phone}" if channel == "phone" else f"Email: {email}"
        blocks.append(f"═══ PESSOA {n} ({label}) ═══\n{body}")
    return "\n".join(blocks)


def _single_header(channel: str, phone: str | None, email: str | None) -> str:
    if channel == "phone":
        return f"📞 Dados encontrados pelo telefone {phone}"
    return f"📧 Dados encontrados pelo e-mail {email}"
