"""Localized canned replies.

Each entry maps a message key to its English and Spanish text. Texts
may carry ``str.format`` placeholders filled in by ``localize``.
"""

from support_bot.config import settings
from support_bot.schemas.classification_schema import Language

_store = settings.store

MESSAGES: dict[str, tuple[str, str]] = {
    # --- order validation ---
    "need_order_and_email": (
        "Hey! I need your order number (like #12345) and email to help you out 😊",
        "¡Perfecto! Necesito el número de pedido (tipo #12345) y tu email para poder ayudarte 😊",
    ),
    "need_order_and_email_other": (
        "To better help you with your order-related query, I need your order number (like #12345) and email 😊",
        "Para ayudarte mejor con tu consulta sobre el pedido, necesito el número de pedido (tipo #12345) y tu email 😊",
    ),
    "invalid_order_number": (
        "Oops! Can't find any order with that number 😅 Can you check and try again?",
        "¡Vaya! No encuentro ningún pedido con ese número 😅 ¿Puedes revisarlo y volver a intentarlo?",
    ),
    "email_mismatch": (
        "Oops! The email doesn't match the order 🤔 Can you check if it's the right one?",
        "¡Ups! El email no coincide con el del pedido 🤔 ¿Puedes revisar si es el correcto?",
    ),
    "order_lookup_failed": (
        "Sorry, I couldn't check your order right now. Please try again in a few minutes.",
        "Lo siento, no he podido consultar tu pedido ahora mismo. Por favor, inténtalo de nuevo en unos minutos.",
    ),

    # --- delivery address change ---
    "ask_new_address": (
        "Can you give me the new delivery address? Remember to include the zip code, city and complete address 📦",
        "¿Me puedes dar la nueva dirección de entrega? Recuerda incluir el código postal, ciudad y dirección completa 📦",
    ),
    "invalid_address": (
        "Sorry, I couldn't validate that address. Could you provide me with the complete address including zip code and city? 🏠",
        "Lo siento, no pude validar esa dirección. ¿Podrías proporcionarme la dirección completa incluyendo código postal y ciudad? 🏠",
    ),
    "confirm_address": (
        'Is this the right address?\n\n{address}\n\nPlease reply "yes" to confirm or provide the correct address if it\'s not 😊',
        '¿Es esta la dirección correcta?\n\n{address}\n\nPor favor, responde "sí" para confirmar o proporciona la dirección correcta si no lo es 😊',
    ),
    "choose_address": (
        "I found multiple possible addresses. Please choose the number of the correct address or provide a new one:\n\n{options}",
        "He encontrado varias direcciones posibles. Por favor, elige el número de la dirección correcta o proporciona una nueva:\n\n{options}",
    ),
    "address_updated": (
        "Perfect! I've updated the shipping address to:\n\n{address}\n\nYour order will be shipped to this new address! 📦✨",
        "¡Perfecto! He actualizado la dirección de envío a:\n\n{address}\n\n¡Tu pedido se enviará a esta nueva dirección! 📦✨",
    ),
    "address_update_failed": (
        "Sorry, I couldn't update the shipping address right now. Please try again in a few minutes.",
        "Lo siento, no he podido actualizar la dirección de envío ahora mismo. Por favor, inténtalo de nuevo en unos minutos.",
    ),
    "address_check_failed": (
        "Sorry, I couldn't check that address right now. Please try again in a few minutes.",
        "Lo siento, no he podido comprobar esa dirección ahora mismo. Por favor, inténtalo de nuevo en unos minutos.",
    ),
    "call_failed": (
        "Sorry, there was a problem making the call. Please try again later.",
        "Lo siento, hubo un problema al realizar la llamada. Por favor, intenta más tarde.",
    ),
    "carrier_opening_line": (
        "Hello, this is {persona}. I'm calling to change the delivery address of my order.",
        "Hola, soy {persona}. Llamo para cambiar la dirección de envío de mi pedido",
    ),

    # --- update order ---
    "ask_update_type": (
        "What would you like to update in your order? The shipping address or a product? 🤔",
        "¿Qué te gustaría actualizar en tu pedido? ¿La dirección de envío o algún producto? 🤔",
    ),
    "product_update_redirect": (
        f"To change a product in your order, we recommend making a return and placing a new order. "
        f"You can start the return here: {_store.returns_portal_url}",
        f"Para cambiar un producto en tu pedido, te recomendamos hacer una devolución y realizar un nuevo pedido. "
        f"Puedes iniciar el proceso de devolución aquí: {_store.returns_portal_url}",
    ),

    # --- returns ---
    "returns_link": (
        f"Sure thing! You can make the change or return in the following link: {_store.returns_portal_url}",
        f"¡Claro! Puedes hacer el cambio o devolución en el siguiente link: {_store.returns_portal_url}",
    ),

    # --- sizing ---
    "ask_sizing_product": (
        "Which product would you like to know the size for?",
        "¿Sobre qué producto te gustaría saber la talla?",
    ),
    "product_lookup_failed": (
        "Sorry, I couldn't check that product right now. Please try again in a few minutes.",
        "Lo siento, no he podido consultar ese producto ahora mismo. Por favor, inténtalo de nuevo en unos minutos.",
    ),
    "product_not_found": (
        "Sorry, I couldn't find that product. Could you verify the name?",
        "Lo siento, no pude encontrar ese producto. ¿Podrías verificar el nombre?",
    ),
    "sizing_needs_intro": (
        "To recommend the best size for the {title}, I need to know:",
        "Para recomendarte la mejor talla para el {title}, necesito saber:",
    ),
    "sizing_needs_height": (
        "- Your height (in cm)",
        "- Tu altura (en cm)",
    ),
    "sizing_needs_fit": (
        "- Your preferred fit (tight, regular, loose)",
        "- Tu preferencia de ajuste (ajustado, regular, holgado)",
    ),

    # --- restock ---
    "ask_restock_product": (
        "Which product would you like to know about restocking?",
        "¿Qué producto te gustaría saber cuándo estará disponible?",
    ),
    "restock_product_unknown": (
        'I\'m sorry, I couldn\'t find the product. Could you confirm the exact product name? For example: "Without shame crewneck"',
        'Lo siento, no pude encontrar el producto. ¿Podrías confirmar el nombre exacto del producto? Por ejemplo: "Without shame crewneck"',
    ),
    "ask_restock_size": (
        "Which size would you like to know about restocking?",
        "¿Qué talla te gustaría saber cuándo estará disponible?",
    ),
    "restock_size_unknown": (
        'I\'m sorry, I couldn\'t find the size you mentioned. Could you confirm the exact size of the product? For example: "Small"',
        'Lo siento, no pude encontrar la talla indicada. ¿Podrías confirmar la talla exacta del producto? Por ejemplo: "Talla S"',
    ),
    "restock_variant_missing": (
        "Sorry, I couldn't find that specific size for this product.",
        "Lo siento, no encontré esa talla específica para este producto.",
    ),
    "restock_available": (
        "Good news! This size is available! Get it here: {link}",
        "¡Buenas noticias! ¡Esta talla está disponible! Consigue la tuya aquí: {link}",
    ),
    "restock_ask_email": (
        "Perfect! If you share your email with me, I'll notify you when the product is back in stock 😊",
        "¡Perfecto! Si me dejas tu email te avisaré cuando el producto esté disponible 😊",
    ),
    "restock_subscribed": (
        "Perfect! We'll notify you at {email} when the {title} is back in stock 😊",
        "¡Perfecto! Te avisaremos en {email} cuando el {title} esté disponible 😊",
    ),
    "email_already_registered": (
        "Oops! It seems that email is already registered. Could you try with another one?",
        "¡Vaya! Parece que ese email ya lo tenemos registrado. ¿Podrías intentarlo con otro?",
    ),
    "email_registration_failed": (
        "I'm sorry, there was an error registering your email. Could you please try again?",
        "Lo siento, ha ocurrido un error al registrar tu correo. ¿Podrías intentarlo de nuevo?",
    ),

    # --- promo ---
    "promo_offer": (
        "Let's do something: if you share your email with me, I'll create a 20% discount you can use for the next 15 minutes 😊",
        "Vamos a hacer una cosa, si me dejas tu email te crearé un descuento del 20% que podrás usar durante los próximos 15 minutos 😊",
    ),
    "promo_code": (
        "Here's your 20% discount code: {code}. Don't tell anyone! It expires in 15 minutes so take advantage of it!",
        "Aquí tienes tu descuento del 20%: {code}. ¡No se lo digas a nadie! Caduca en 15 minutos, ¡aprovéchalo!",
    ),
    "promo_failed": (
        "I'm sorry, there was an error creating the discount. Could you please try again?",
        "Lo siento, ha ocurrido un error al crear el descuento. ¿Podrías intentarlo de nuevo?",
    ),

    # --- invoice ---
    "invoice_sent": (
        "Perfect! I've sent the invoice to your email 📧",
        "¡Perfecto! Te he enviado la factura por email 📧",
    ),
    "invoice_order_missing": (
        "Sorry, I couldn't find the order data.",
        "Lo siento, no he podido encontrar los datos del pedido.",
    ),
    "invoice_failed": (
        "Sorry, there was an error generating the invoice. Please try again later.",
        "Lo siento, ha habido un error generando la factura. Por favor, inténtalo de nuevo más tarde.",
    ),

    # --- general ---
    "closing": (
        f"Thank you for trusting {_store.name}! Have a great day! 🙌✨",
        f"¡Gracias por confiar en {_store.name}! ¡Que tengas un buen día! 🙌✨",
    ),
    "reply_failed": (
        "Sorry, an error occurred while processing your request. Please try again.",
        "Lo siento, ha ocurrido un error al procesar tu solicitud. Por favor, inténtalo de nuevo.",
    ),
}


def localize(key: str, language: Language, **values: str) -> str:
    """Return the canned message ``key`` in ``language``.

    Raises:
        KeyError: If ``key`` is not a known message.
    """
    english, spanish = MESSAGES[key]
    text = spanish if language == Language.SPANISH else english
    return text.format(**values) if values else text
