from __future__ import annotations

import html
from datetime import datetime
from typing import Dict, List
from urllib.parse import urlencode

import httpx

from iara.core.config import settings
from iara.core.logger import logger
from iara.core.security import create_approval_token

RESEND_URL = "https://api.resend.com/emails"


class NotificationService:
    """Transactional email with a provider toggle (dev logs, resend sends)."""

    def __init__(self) -> None:
        self.provider = (settings.EMAIL_PROVIDER or "dev").strip().lower()
        # Tests swap in httpx.MockTransport here
        self.transport = None

    def send_email(self, to: List[str], subject: str, body_html: str) -> Dict[str, str]:
        provider = self.provider
        if provider == "dev":
            logger.info("[DEV EMAIL] to=%s subject=%s", ",".join(to), subject)
            return {"provider": "dev", "target": ",".join(to)}
        if provider == "resend":
            api_key = (settings.RESEND_API_KEY or "").strip()
            sender = (settings.EMAIL_FROM or "").strip()
            if not api_key or not sender:
                raise ValueError("Resend email config missing (RESEND_API_KEY/EMAIL_FROM)")
            payload = {
                "from": sender,
                "to": to,
                "subject": subject,
                "html": body_html,
            }
            headers = {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
            with httpx.Client(timeout=20.0, transport=self.transport) as client:
                resp = client.post(RESEND_URL, json=payload, headers=headers)
                if resp.status_code >= 400:
                    raise ValueError(f"Resend email failed: {resp.status_code} {resp.text[:200]}")
            return {"provider": "resend", "target": ",".join(to)}
        raise ValueError(f"Unsupported EMAIL_PROVIDER: {provider}")

    def _deliver(self, to: List[str], subject: str, body_html: str) -> bool:
        """Email never blocks the approval workflow; failures are only logged."""
        try:
            self.send_email(to, subject, body_html)
            return True
        except (ValueError, httpx.HTTPError) as e:
            logger.error("Failed to send '%s' to %s: %s", subject, ",".join(to), str(e))
            return False

    def approval_link(self, user_id: str, action: str) -> str:
        query = urlencode({
            "userId": str(user_id),
            "action": action,
            "token": create_approval_token(str(user_id), action),
        })
        return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/api/v1/approve-user?{query}"

    def notify_admin_new_registration(self, user_id: str, email: str, display_name: str) -> bool:
        approve_url = html.escape(self.approval_link(user_id, "approve"))
        reject_url = html.escape(self.approval_link(user_id, "reject"))
        body = f"""
          <h2>Nova Solicitação de Cadastro</h2>
          <p><strong>Nome:</strong> {html.escape(display_name or '')}</p>
          <p><strong>Email:</strong> {html.escape(email)}</p>
          <p><strong>Data:</strong> {datetime.utcnow().strftime('%d/%m/%Y %H:%M')} UTC</p>
          <div style="margin: 20px 0;">
            <a href="{approve_url}" style="background: #22c55e; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px; margin-right: 10px;">Aprovar</a>
            <a href="{reject_url}" style="background: #ef4444; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Rejeitar</a>
          </div>
          <p>Clique em um dos botões acima para aprovar ou rejeitar este cadastro.</p>
        """
        return self._deliver(
            [settings.ADMIN_NOTIFICATION_EMAIL],
            "Nova Solicitação de Cadastro - IARA",
            body,
        )

    def notify_user_decision(self, email: str, display_name: str, approved: bool) -> bool:
        name = html.escape(display_name or "")
        if approved:
            subject = "Cadastro Aprovado - IARA"
            body = f"""
              <h2>Seu cadastro foi aprovado!</h2>
              <p>Olá {name},</p>
              <p>Seu cadastro no sistema IARA foi aprovado com sucesso!</p>
              <p>Agora você pode acessar o sistema e utilizar nossa plataforma de análise jurídica inteligente.</p>
              <p><a href="{html.escape(settings.FRONTEND_URL)}" style="background: #3b82f6; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;">Acessar IARA</a></p>
            """
        else:
            subject = "Cadastro Não Aprovado - IARA"
            body = f"""
              <h2>Cadastro Não Aprovado</h2>
              <p>Olá {name},</p>
              <p>Infelizmente seu cadastro no sistema IARA não foi aprovado no momento.</p>
              <p>Entre em contato conosco se precisar de mais informações.</p>
            """
        return self._deliver([email], subject, body)


notification_service = NotificationService()
