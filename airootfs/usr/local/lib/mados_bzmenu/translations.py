"""madOS Bluetooth Menu - Internationalization translations.

Provides menu labels, prompts and notification texts for English,
Spanish, French and German.  Templated strings use ``str.format`` fields
(``{name}``, ``{error}``, ``{passkey}``).
"""

TRANSLATIONS = {
    'English': {
        'title': 'Bluetooth',
        'power_on': 'Turn On',
        'power_off': 'Turn Off',
        'scan': 'Scan for Devices',
        'stop_scan': 'Stop Scanning',
        'view_devices': 'Devices',
        'refresh': 'Refresh',
        'back': 'Back',
        'exit': 'Exit',
        'pair': 'Pair',
        'connect': 'Connect',
        'disconnect': 'Disconnect',
        'trust': 'Trust',
        'untrust': 'Revoke Trust',
        'remove': 'Remove',
        'confirm': 'Confirm',
        'cancel': 'Cancel',
        'prompt_devices': 'Devices',
        'prompt_scanning': 'Scanning',
        'confirm_remove': 'Remove {name}?',
        'confirm_passkey': 'Confirm passkey {passkey} for {name}?',
        'confirm_authorization': 'Allow {name} to pair?',
        'enter_pin': 'PIN for {name}',
        'adapter_enabled': 'Bluetooth adapter enabled',
        'adapter_disabled': 'Bluetooth adapter disabled',
        'scan_started': 'Scanning for devices...',
        'scan_completed': 'Device scan completed',
        'device_paired': 'Paired with {name}',
        'device_connected': 'Connected to {name}',
        'device_disconnected': 'Disconnected from {name}',
        'device_trusted': '{name} is now trusted',
        'device_untrusted': 'Trust revoked for {name}',
        'device_removed': '{name} removed',
        'action_failed': '{name}: {error}',
        'out_of_range': '{name} is out of range',
        'device_busy': '{name} is busy, try again',
        'authorization_required': 'Pairing with {name} was not authorized',
        'pair_timeout': 'Pairing with {name} timed out',
        'display_passkey': 'Enter passkey {passkey} on {name}',
        'settings': 'Settings',
        'enable_discoverable': 'Enable Discoverable',
        'disable_discoverable': 'Disable Discoverable',
        'enable_pairable': 'Enable Pairable',
        'disable_pairable': 'Disable Pairable',
        'disable_adapter': 'Disable Adapter',
        'discoverable_enabled': 'Adapter is now discoverable',
        'discoverable_disabled': 'Adapter is no longer discoverable',
        'pairable_enabled': 'Adapter is now pairable',
        'pairable_disabled': 'Adapter is no longer pairable',
    },

    'Español': {
        'title': 'Bluetooth',
        'power_on': 'Encender',
        'power_off': 'Apagar',
        'scan': 'Buscar dispositivos',
        'stop_scan': 'Detener búsqueda',
        'view_devices': 'Dispositivos',
        'refresh': 'Actualizar',
        'back': 'Volver',
        'exit': 'Salir',
        'pair': 'Emparejar',
        'connect': 'Conectar',
        'disconnect': 'Desconectar',
        'trust': 'Confiar',
        'untrust': 'No confiar',
        'remove': 'Eliminar',
        'confirm': 'Confirmar',
        'cancel': 'Cancelar',
        'prompt_devices': 'Dispositivos',
        'prompt_scanning': 'Buscando',
        'confirm_remove': '¿Eliminar {name}?',
        'confirm_passkey': '¿Confirmar la clave {passkey} para {name}?',
        'confirm_authorization': '¿Permitir que {name} se empareje?',
        'enter_pin': 'PIN para {name}',
        'adapter_enabled': 'Adaptador Bluetooth encendido',
        'adapter_disabled': 'Adaptador Bluetooth apagado',
        'scan_started': 'Buscando dispositivos...',
        'scan_completed': 'Búsqueda de dispositivos terminada',
        'device_paired': 'Emparejado con {name}',
        'device_connected': 'Conectado a {name}',
        'device_disconnected': 'Desconectado de {name}',
        'device_trusted': '{name} ahora es de confianza',
        'device_untrusted': '{name} ya no es de confianza',
        'device_removed': '{name} eliminado',
        'action_failed': '{name}: {error}',
        'out_of_range': '{name} está fuera de alcance',
        'device_busy': '{name} está ocupado, inténtalo de nuevo',
        'authorization_required': 'El emparejamiento con {name} no fue autorizado',
        'pair_timeout': 'El emparejamiento con {name} agotó el tiempo',
        'display_passkey': 'Introduce la clave {passkey} en {name}',
        'settings': 'Ajustes',
        'enable_discoverable': 'Activar visibilidad',
        'disable_discoverable': 'Desactivar visibilidad',
        'enable_pairable': 'Permitir emparejamiento',
        'disable_pairable': 'Bloquear emparejamiento',
        'disable_adapter': 'Apagar adaptador',
        'discoverable_enabled': 'El adaptador ahora es visible',
        'discoverable_disabled': 'El adaptador ya no es visible',
        'pairable_enabled': 'El adaptador acepta emparejamientos',
        'pairable_disabled': 'El adaptador ya no acepta emparejamientos',
    },

    'Français': {
        'title': 'Bluetooth',
        'power_on': 'Activer',
        'power_off': 'Désactiver',
        'scan': 'Rechercher des appareils',
        'stop_scan': 'Arrêter la recherche',
        'view_devices': 'Appareils',
        'refresh': 'Actualiser',
        'back': 'Retour',
        'exit': 'Quitter',
        'pair': 'Appairer',
        'connect': 'Connecter',
        'disconnect': 'Déconnecter',
        'trust': 'Faire confiance',
        'untrust': 'Retirer la confiance',
        'remove': 'Supprimer',
        'confirm': 'Confirmer',
        'cancel': 'Annuler',
        'prompt_devices': 'Appareils',
        'prompt_scanning': 'Recherche',
        'confirm_remove': 'Supprimer {name} ?',
        'confirm_passkey': 'Confirmer le code {passkey} pour {name} ?',
        'confirm_authorization': 'Autoriser {name} à s\'appairer ?',
        'enter_pin': 'Code PIN pour {name}',
        'adapter_enabled': 'Adaptateur Bluetooth activé',
        'adapter_disabled': 'Adaptateur Bluetooth désactivé',
        'scan_started': 'Recherche d\'appareils...',
        'scan_completed': 'Recherche d\'appareils terminée',
        'device_paired': 'Appairé avec {name}',
        'device_connected': 'Connecté à {name}',
        'device_disconnected': 'Déconnecté de {name}',
        'device_trusted': '{name} est maintenant approuvé',
        'device_untrusted': 'Confiance retirée pour {name}',
        'device_removed': '{name} supprimé',
        'action_failed': '{name} : {error}',
        'out_of_range': '{name} est hors de portée',
        'device_busy': '{name} est occupé, réessayez',
        'authorization_required': 'L\'appairage avec {name} n\'a pas été autorisé',
        'pair_timeout': 'L\'appairage avec {name} a expiré',
        'display_passkey': 'Saisissez le code {passkey} sur {name}',
        'settings': 'Paramètres',
        'enable_discoverable': 'Activer la visibilité',
        'disable_discoverable': 'Désactiver la visibilité',
        'enable_pairable': 'Autoriser l\'appairage',
        'disable_pairable': 'Bloquer l\'appairage',
        'disable_adapter': 'Désactiver l\'adaptateur',
        'discoverable_enabled': 'L\'adaptateur est maintenant visible',
        'discoverable_disabled': 'L\'adaptateur n\'est plus visible',
        'pairable_enabled': 'L\'adaptateur accepte l\'appairage',
        'pairable_disabled': 'L\'adaptateur refuse l\'appairage',
    },

    'Deutsch': {
        'title': 'Bluetooth',
        'power_on': 'Einschalten',
        'power_off': 'Ausschalten',
        'scan': 'Nach Geräten suchen',
        'stop_scan': 'Suche beenden',
        'view_devices': 'Geräte',
        'refresh': 'Aktualisieren',
        'back': 'Zurück',
        'exit': 'Beenden',
        'pair': 'Koppeln',
        'connect': 'Verbinden',
        'disconnect': 'Trennen',
        'trust': 'Vertrauen',
        'untrust': 'Vertrauen entziehen',
        'remove': 'Entfernen',
        'confirm': 'Bestätigen',
        'cancel': 'Abbrechen',
        'prompt_devices': 'Geräte',
        'prompt_scanning': 'Suche läuft',
        'confirm_remove': '{name} entfernen?',
        'confirm_passkey': 'Schlüssel {passkey} für {name} bestätigen?',
        'confirm_authorization': 'Kopplung mit {name} erlauben?',
        'enter_pin': 'PIN für {name}',
        'adapter_enabled': 'Bluetooth-Adapter eingeschaltet',
        'adapter_disabled': 'Bluetooth-Adapter ausgeschaltet',
        'scan_started': 'Suche nach Geräten...',
        'scan_completed': 'Gerätesuche abgeschlossen',
        'device_paired': 'Mit {name} gekoppelt',
        'device_connected': 'Mit {name} verbunden',
        'device_disconnected': 'Von {name} getrennt',
        'device_trusted': '{name} ist jetzt vertrauenswürdig',
        'device_untrusted': '{name} wird nicht mehr vertraut',
        'device_removed': '{name} entfernt',
        'action_failed': '{name}: {error}',
        'out_of_range': '{name} ist außer Reichweite',
        'device_busy': '{name} ist beschäftigt, bitte erneut versuchen',
        'authorization_required': 'Kopplung mit {name} wurde nicht autorisiert',
        'pair_timeout': 'Zeitüberschreitung beim Koppeln mit {name}',
        'display_passkey': 'Schlüssel {passkey} auf {name} eingeben',
        'settings': 'Einstellungen',
        'enable_discoverable': 'Sichtbarkeit einschalten',
        'disable_discoverable': 'Sichtbarkeit ausschalten',
        'enable_pairable': 'Kopplung erlauben',
        'disable_pairable': 'Kopplung sperren',
        'disable_adapter': 'Adapter ausschalten',
        'discoverable_enabled': 'Adapter ist jetzt sichtbar',
        'discoverable_disabled': 'Adapter ist nicht mehr sichtbar',
        'pairable_enabled': 'Adapter erlaubt jetzt Kopplungen',
        'pairable_disabled': 'Adapter erlaubt keine Kopplungen mehr',
    },
}


def detect_system_language():
    """Detect the system language from environment variables.

    Returns:
        The language name matching available translations, or 'English'.
    """
    import os
    import locale

    lang_code = None
    for var in ['LC_ALL', 'LC_MESSAGES', 'LANG', 'LANGUAGE']:
        lang_code = os.environ.get(var)
        if lang_code:
            break

    if not lang_code:
        try:
            lang_tuple = locale.getlocale(locale.LC_MESSAGES)
            if not lang_tuple or not lang_tuple[0]:
                lang_tuple = locale.getlocale()
            if lang_tuple and lang_tuple[0]:
                lang_code = lang_tuple[0]
        except (ValueError, AttributeError):
            pass

    if not lang_code:
        return 'English'

    lang_prefix = lang_code.split('_')[0].split('.')[0].lower()

    lang_map = {
        'en': 'English',
        'es': 'Español',
        'fr': 'Français',
        'de': 'Deutsch',
    }

    return lang_map.get(lang_prefix, 'English')


def get_text(key, language='English', **fields):
    """Retrieve a translated string for the given key and language.

    Args:
        key: The translation key to look up.
        language: The language name (default: 'English').
        **fields: Values substituted into ``{placeholders}``.

    Returns:
        The translated string, or the English fallback, or the key itself.
    """
    lang_dict = TRANSLATIONS.get(language, TRANSLATIONS['English'])
    text = lang_dict.get(key, TRANSLATIONS['English'].get(key, key))
    if fields:
        text = text.format(**fields)
    return text
