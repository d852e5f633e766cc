CONTACT_FORM = {
    "slug": "contact",
    "title": "Contact",
    "description": "General enquiries from the public site.",
    "fields": [
        {"slug": "name", "label": "Name", "type": "text", "required": True},
        {"slug": "email", "label": "Email", "type": "email", "required": True},
        {"slug": "company", "label": "Company", "type": "text", "required": False},
        {"slug": "message", "label": "Message", "type": "textarea", "required": True},
        {"slug": "newsletter", "label": "Subscribe to updates", "type": "boolean", "required": False},
    ],
    "success_message": "Thank you! Your submission has been received.",
    "thank_you_post_id": None,
    # extra webhook endpoints notified only for this form
    "subscriptions": [],
}
