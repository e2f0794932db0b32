from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from appointments import format_time_to_ampm


def render_receipt(appt: dict) -> BytesIO:
    """Draw a one-page booking confirmation and return it rewound."""
    buffer = BytesIO()
    p = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    p.setTitle("Appointment Confirmation")
    p.setFillColorRGB(0.45, 0.12, 0.3)
    p.rect(0, height-120, width, 120, stroke=0, fill=1)
    p.setFillColorRGB(1, 1, 1)
    p.setFont("Helvetica-Bold", 28)
    p.drawString(40, height-80, "BEAUTY PARLOUR")
    p.setFont("Helvetica", 12)
    p.drawString(40, height-100, "Appointment Confirmation")
    p.setFillColorRGB(0, 0, 0)
    y = height-160
    lines = [
        f"Name: {appt.get('name') or '-'}",
        f"Email: {appt.get('email') or '-'}",
        f"Phone: {appt.get('phone')}",
        f"Service: {str(appt.get('service', '-')).capitalize()}",
        f"Date: {appt['date'].strftime('%A, %d %B %Y') if appt.get('date') else '-'}",
        f"Time: {format_time_to_ampm(appt['time']) if appt.get('time') else '-'}",
        f"Special Requests: {appt.get('specialRequests') or '-'}",
    ]
    p.setFont("Helvetica", 12)
    for line in lines:
        p.drawString(40, y, line)
        y -= 24
    p.line(40, y, width-40, y)
    y -= 24
    p.setFont("Helvetica-Oblique", 10)
    p.drawString(40, y, "Please arrive ten minutes early. To reschedule, contact us with your phone number.")
    p.showPage()
    p.save()
    buffer.seek(0)
    return buffer
