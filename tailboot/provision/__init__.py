"""

.. _userdata:

tailboot.provision.userdata
---------------------------

userdata.sh
~~~~~~~~~~~

This script is attached as the second part of every user-data document
and runs in the ``scripts-user`` stage on each boot. A ``script`` from
the configuration file is appended to it.
See :py:class:`tailboot.provision.cloud_init.TailscaleInit`

.. literalinclude:: ../tailboot/provision/userdata/userdata.sh
   :language: shell

"""
