"""
License contract generation.

Builds the PDF contract attached to every purchased beat. Layout is fixed
and the document is rendered in invariant mode, so the same inputs always
produce the same bytes.
"""

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
import logging
from typing import Dict, List

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from xml.sax.saxutils import escape

from beatmarket.app.config import settings
from beatmarket.models.enums import LicenseType
from beatmarket.utils.formatting import format_date, format_price, resolve_locale

logger = logging.getLogger(__name__)


class ContractGenerationError(Exception):
    """The PDF could not be rendered."""
    pass


@dataclass
class ContractDetails:
    order_number: str
    customer_name: str
    customer_email: str
    beat_title: str
    license_type: LicenseType
    price: int
    date: datetime
    locale: str = "en"


LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "title": "MUSIC LICENSE AGREEMENT",
        "order": "Order number",
        "date": "Date",
        "parties": "PARTIES",
        "producer": "Producer",
        "licensee": "Licensee",
        "email": "Email",
        "work": "MUSICAL WORK",
        "beat": "Title",
        "license": "License type",
        "price": "Price",
        "terms": "LICENSE TERMS",
        "conditions": "GENERAL CONDITIONS",
        "accept": "The Licensee acknowledges having read and accepted the terms of this license. "
                  "This license is non-transferable and starts on the date of purchase.",
        "credit": 'Producer credit must appear as "(prod. by {producer})" on every distribution platform.',
        "rights": "All rights reserved.",
    },
    "fr": {
        "title": "CONTRAT DE LICENCE MUSICALE",
        "order": "Numéro de commande",
        "date": "Date",
        "parties": "PARTIES",
        "producer": "Producteur",
        "licensee": "Licencié",
        "email": "Email",
        "work": "ŒUVRE MUSICALE",
        "beat": "Titre",
        "license": "Type de licence",
        "price": "Prix",
        "terms": "TERMES DE LA LICENCE",
        "conditions": "CONDITIONS GÉNÉRALES",
        "accept": "Le Licencié reconnaît avoir lu et accepté les termes de cette licence. "
                  "Cette licence est non-transférable et commence à la date d'achat.",
        "credit": 'Le crédit du producteur doit apparaître comme suit : "(prod. par {producer})" '
                  "sur toutes les plateformes de distribution.",
        "rights": "Tous droits réservés.",
    },
}

LICENSE_TERMS: Dict[str, Dict[LicenseType, List[str]]] = {
    "en": {
        LicenseType.basic: [
            "High quality MP3 file included",
            "Up to 50,000 streams",
            "Up to 500 physical sales",
            "The instrumental remains available for sale",
            "Producer credit required",
            "Non-exclusive license",
        ],
        LicenseType.standard: [
            "High quality MP3 and WAV files included",
            "Up to 100,000 streams",
            "Up to 1,000 physical sales",
            "The instrumental remains available for sale",
            "Producer credit required",
            "Non-exclusive license",
        ],
        LicenseType.pro: [
            "MP3, WAV and track stems included",
            "Up to 250,000 streams",
            "Up to 2,500 physical sales",
            "The instrumental remains available for sale",
            "Producer credit required",
            "Non-exclusive license",
        ],
        LicenseType.unlimited: [
            "MP3, WAV and track stems included",
            "Unlimited streams",
            "Unlimited physical sales",
            "The instrumental remains available for sale",
            "Producer credit required",
            "Non-exclusive license",
        ],
        LicenseType.exclusive: [
            "MP3, WAV and track stems included",
            "Unlimited streams and sales",
            "The instrumental is withdrawn from sale",
            "Producer credit required",
            "EXCLUSIVE license: you are the only one allowed to use this instrumental",
            "Permanent exclusive rights",
        ],
    },
    "fr": {
        LicenseType.basic: [
            "Fichier MP3 haute qualité inclus",
            "Jusqu'à 50 000 streams autorisés",
            "Jusqu'à 500 ventes physiques autorisées",
            "L'instrumental reste disponible à la vente",
            "Crédit obligatoire du producteur",
            "Licence non-exclusive",
        ],
        LicenseType.standard: [
            "Fichiers MP3 et WAV haute qualité inclus",
            "Jusqu'à 100 000 streams autorisés",
            "Jusqu'à 1 000 ventes physiques autorisées",
            "L'instrumental reste disponible à la vente",
            "Crédit obligatoire du producteur",
            "Licence non-exclusive",
        ],
        LicenseType.pro: [
            "Fichiers MP3, WAV et pistes séparées (stems) inclus",
            "Jusqu'à 250 000 streams autorisés",
            "Jusqu'à 2 500 ventes physiques autorisées",
            "L'instrumental reste disponible à la vente",
            "Crédit obligatoire du producteur",
            "Licence non-exclusive",
        ],
        LicenseType.unlimited: [
            "Fichiers MP3, WAV et pistes séparées (stems) inclus",
            "Streams illimités",
            "Ventes physiques illimitées",
            "L'instrumental reste disponible à la vente",
            "Crédit obligatoire du producteur",
            "Licence non-exclusive",
        ],
        LicenseType.exclusive: [
            "Fichiers MP3, WAV et pistes séparées (stems) inclus",
            "Streams et ventes illimités",
            "L'instrumental est retiré de la vente",
            "Crédit obligatoire du producteur",
            "Licence EXCLUSIVE : vous êtes le seul à pouvoir utiliser cet instrumental",
            "Droits exclusifs permanents",
        ],
    },
}


def _contract_locale(locale: str) -> str:
    locale = resolve_locale(locale)
    return locale if locale in LABELS else "en"


def license_terms(license_type: LicenseType, locale: str = "en") -> List[str]:
    return LICENSE_TERMS[_contract_locale(locale)][LicenseType(license_type)]


def generate_license_contract(details: ContractDetails) -> bytes:
    """
    Render the contract PDF for one purchased item.

    Returns the PDF as bytes.

    Raises:
        ContractGenerationError
    """
    locale = _contract_locale(details.locale)
    labels = LABELS[locale]
    producer = settings.PRODUCER_NAME

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"{labels['title']} - {details.order_number}",
        author=producer,
        invariant=1,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ContractTitle', parent=styles['Title'], fontSize=20, alignment=TA_CENTER)
    right_style = ParagraphStyle('ContractRight', parent=styles['Normal'], alignment=TA_RIGHT)
    heading_style = ParagraphStyle('ContractHeading', parent=styles['Heading2'], fontSize=13, spaceBefore=12)
    body_style = ParagraphStyle('ContractBody', parent=styles['Normal'], fontSize=11, leading=15)
    footer_style = ParagraphStyle('ContractFooter', parent=styles['Normal'], fontSize=9, alignment=TA_CENTER,
                                  textColor=colors.grey)

    price = format_price(details.price, locale, settings.STRIPE_CURRENCY)
    story = [
        Paragraph(escape(labels['title']), title_style),
        Spacer(1, 12),
        Paragraph(f"{labels['order']}: {escape(details.order_number)}", right_style),
        Paragraph(f"{labels['date']}: {format_date(details.date, locale)}", right_style),
        HRFlowable(width="100%", thickness=1, color=colors.black, spaceBefore=8, spaceAfter=8),
        Paragraph(labels['parties'], heading_style),
    ]

    parties = Table(
        [
            [labels['producer'], producer],
            [labels['licensee'], details.customer_name],
            [labels['email'], details.customer_email],
        ],
        colWidths=[1.8 * inch, 4.6 * inch],
    )
    parties.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 11),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    story.append(parties)

    story.append(Paragraph(labels['work'], heading_style))
    work = Table(
        [
            [labels['beat'], details.beat_title],
            [labels['license'], LicenseType(details.license_type).value.upper()],
            [labels['price'], price],
        ],
        colWidths=[1.8 * inch, 4.6 * inch],
    )
    work.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 11),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
    ]))
    story.append(work)

    story.append(Paragraph(labels['terms'], heading_style))
    for term in license_terms(details.license_type, locale):
        story.append(Paragraph(f"&bull; {escape(term)}", body_style))

    story.append(Paragraph(labels['conditions'], heading_style))
    story.append(Paragraph(escape(labels['accept']), body_style))
    story.append(Spacer(1, 6))
    story.append(Paragraph(escape(labels['credit'].format(producer=producer)), body_style))
    story.append(Spacer(1, 24))
    story.append(Paragraph(f"&copy; {details.date.year} {escape(producer)}. {labels['rights']}", footer_style))

    try:
        doc.build(story)
    except Exception as e:
        logger.error(f"Failed to render contract for {details.order_number}: {e}")
        raise ContractGenerationError(str(e)) from e

    return buffer.getvalue()
